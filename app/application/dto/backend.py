from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BackendModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DraftResponseDTO(BackendModel):
    draft_id: str | None = Field(None, alias="draftId")
    error: str | None = None


class GoogleAuthInitDTO(BackendModel):
    ok: bool | None = None
    auth_url: str | None = Field(None, alias="authUrl")
    request_id: str | None = Field(None, alias="requestId")
    error: str | None = None


class GoogleAuthStatusDTO(BackendModel):
    verified: bool = False
    pending: bool | None = None
    appointment_id: str | None = Field(None, alias="appointmentId")
    error: str | None = None


class PromotionResponseDTO(BackendModel):
    ok: bool | None = None
    appointment_id: str | None = Field(None, alias="appointmentId")
    error: str | None = None


class AppointmentDTO(BackendModel):
    id: str | None = None
    service_title: str | None = Field(None, alias="serviceTitle")
    master_name: str | None = Field(None, alias="masterName")
    start_at: datetime | None = Field(None, alias="startAt")
    duration: int | None = None
    total_price: float | None = Field(None, alias="totalPrice")
    payment_status: str | None = Field(None, alias="paymentStatus")
    error: str | None = None


class StripeIntentDTO(BackendModel):
    client_secret: str | None = Field(None, alias="clientSecret")
    payment_intent_id: str | None = Field(None, alias="paymentIntentId")
    error: str | None = None


class OnsiteConfirmDTO(BackendModel):
    success: bool = False
    message: str | None = None
    error: str | None = None


class PaypalOrderDTO(BackendModel):
    order_id: str | None = Field(None, alias="orderId")
    error: str | None = None


class PaypalCaptureDTO(BackendModel):
    success: bool | None = None
    status: str | None = None
    error: str | None = None

    @property
    def completed(self) -> bool:
        if self.success is not None:
            return self.success
        return (self.status or "").upper() == "COMPLETED"
