from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

BOOKING_COMPLETE = "booking-complete"


class WindowMessageDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    appointment_id: str = Field(alias="appointmentId", min_length=1)

    @classmethod
    def parse_booking_complete(cls, data: Any) -> "WindowMessageDTO | None":
        """Return the parsed message if `data` is a well-formed booking-complete message."""
        if not isinstance(data, dict):
            return None
        try:
            message = cls.model_validate(data)
        except ValidationError:
            return None
        if message.type != BOOKING_COMPLETE:
            return None
        return message
