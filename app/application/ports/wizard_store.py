from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.application.use_cases.booking_wizard import BookingWizard


class WizardStorePort(ABC):
    @abstractmethod
    def create(self, wizard: "BookingWizard") -> str:
        """Store a wizard. Returns session_id."""
        raise NotImplementedError

    @abstractmethod
    def get(self, session_id: str) -> "BookingWizard | None":
        raise NotImplementedError

    @abstractmethod
    def remove(self, session_id: str) -> "BookingWizard | None":
        raise NotImplementedError
