from __future__ import annotations


class BookingError(RuntimeError):
    """Base class for every error the booking orchestrator surfaces to the user."""

    code = "booking_error"
    fatal = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError):
    """Raised when a selection or contact form is malformed. Never reaches the network."""

    code = "validation_error"

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = dict(fields or {})


class BackendRejectedError(BookingError):
    """Raised when the backend refuses a draft, promotion or lookup."""

    code = "backend_rejected"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SlotUnavailableError(BackendRejectedError):
    """Raised when promotion fails because the held slot is gone. The wizard must restart."""

    code = "slot_unavailable"
    fatal = True


class PopupBlockedError(BookingError):
    """Raised when the browser refuses to open the authentication window."""

    code = "popup_blocked"


class NetworkUnavailableError(BookingError):
    """Raised on transport failures (timeouts, connection errors)."""

    code = "network_unavailable"


class PaymentFailedError(BookingError):
    """Raised when a payment backend or SDK reports a failure."""

    code = "payment_failed"


class VerificationExpiredError(BookingError):
    """Raised when a verification poll outlives its deadline."""

    code = "verification_expired"


class DraftInFlightError(BookingError):
    code = "draft_in_flight"
