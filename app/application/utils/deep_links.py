from __future__ import annotations

from urllib.parse import urlencode

from app.domain.entities.draft import Draft
from app.domain.entities.verification import VerificationChannel

_HANDOFF_PATHS = {
    VerificationChannel.telegram: "/booking/telegram-verify",
    VerificationChannel.sms: "/booking/sms-verify",
}


def build_handoff_url(base_url: str, channel: VerificationChannel, draft: Draft, locale: str | None = None) -> str:
    """Build the out-of-band verification URL carrying the draft id and the client's phone."""
    path = _HANDOFF_PATHS.get(channel)
    if path is None:
        raise ValueError(f"No out-of-band handoff for channel {channel.value}")

    params = {"draft": draft.draft_id, "phone": draft.contact.phone.strip()}
    if locale:
        params["lang"] = locale
    return f"{base_url.rstrip('/')}{path}?{urlencode(params)}"
