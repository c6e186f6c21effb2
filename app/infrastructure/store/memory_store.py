from __future__ import annotations

import uuid

from app.application.ports.wizard_store import WizardStorePort
from app.application.use_cases.booking_wizard import BookingWizard


class MemoryWizardStore(WizardStorePort):
    def __init__(self) -> None:
        self._wizards: dict[str, BookingWizard] = {}

    def create(self, wizard: BookingWizard) -> str:
        session_id = uuid.uuid4().hex
        self._wizards[session_id] = wizard
        return session_id

    def get(self, session_id: str) -> BookingWizard | None:
        return self._wizards.get(session_id)

    def remove(self, session_id: str) -> BookingWizard | None:
        return self._wizards.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._wizards)
