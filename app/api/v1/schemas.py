from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.entities.contact_draft import ReferralSource
from app.domain.entities.payment import PaymentMethod
from app.domain.entities.verification import VerificationChannel


class SelectionSchema(BaseModel):
    service_ids: list[str] = Field(min_length=1)
    master_id: str
    start_at: datetime
    end_at: datetime
    selected_date: date | None = None


class ContactSchema(BaseModel):
    name: str
    phone: str
    email: str
    birth_date: date | None = None
    referral: ReferralSource | None = None
    referral_other: str | None = None
    notes: str | None = None


class CreateSessionRequestSchema(BaseModel):
    selection: SelectionSchema
    contact: ContactSchema
    locale: str | None = None


class ErrorSchema(BaseModel):
    code: str
    message: str


class VerificationSchema(BaseModel):
    state: str
    loading: bool = False
    channel: str | None = None
    request_id: str | None = None
    deep_link: str | None = None


class PaymentSchema(BaseModel):
    state: str
    loading: bool = False
    method: str | None = None
    amount_cents: int | None = None
    client_secret: str | None = None
    order_id: str | None = None
    retry_eligible: bool = False


class SessionSchema(BaseModel):
    session_id: str
    step: str
    draft_id: str | None = None
    appointment_id: str | None = None
    restart_required: bool = False
    verification: VerificationSchema | None = None
    payment: PaymentSchema | None = None
    error: ErrorSchema | None = None


class StartVerificationRequestSchema(BaseModel):
    channel: VerificationChannel


class CompleteVerificationRequestSchema(BaseModel):
    reference: str | None = None
    appointment_id: str | None = None


class WindowMessageRequestSchema(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class SelectMethodRequestSchema(BaseModel):
    method: PaymentMethod


class StripeResultRequestSchema(BaseModel):
    succeeded: bool
    payment_intent_id: str | None = None
    message: str | None = None


class PaypalOrderResponseSchema(BaseModel):
    order_id: str | None = None
    session: SessionSchema


class PaypalApproveRequestSchema(BaseModel):
    order_id: str


class CalendarLinksSchema(BaseModel):
    ics_url: str
    google_url: str | None = None
