from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException

from app.api.v1.schemas import (
    CalendarLinksSchema,
    CompleteVerificationRequestSchema,
    CreateSessionRequestSchema,
    PaypalApproveRequestSchema,
    PaypalOrderResponseSchema,
    SelectMethodRequestSchema,
    SessionSchema,
    StartVerificationRequestSchema,
    StripeResultRequestSchema,
    WindowMessageRequestSchema,
)
from app.application.exceptions import BookingError, BookingValidationError, NetworkUnavailableError
from app.application.ports.wizard_store import WizardStorePort
from app.application.use_cases.booking_wizard import BookingWizard
from app.core.config import settings
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft
from app.wiring.dependencies import build_wizard, get_wizard_store

router = APIRouter(prefix="/booking")
logger = logging.getLogger(__name__)


def _status_for(error: BookingError) -> int:
    if isinstance(error, BookingValidationError):
        return 422
    if isinstance(error, NetworkUnavailableError):
        return 503
    return 409


def _session(session_id: str, wizard: BookingWizard) -> SessionSchema:
    return SessionSchema(session_id=session_id, **wizard.snapshot())


def _relay_enabled() -> bool:
    # Without a real browser window the client relays popup messages and handoff results itself.
    return settings.BROWSER_PROVIDER.lower() == "mock"


def _get_wizard(session_id: str, store: WizardStorePort) -> BookingWizard:
    wizard = store.get(session_id)
    if wizard is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return wizard


@router.post("/sessions", response_model=SessionSchema, status_code=201)
async def create_session(
    req: CreateSessionRequestSchema,
    store: WizardStorePort = Depends(get_wizard_store),
):
    selection = BookingSelection(
        service_ids=tuple(dict.fromkeys(req.selection.service_ids)),
        master_id=req.selection.master_id,
        start_at=req.selection.start_at,
        end_at=req.selection.end_at,
        selected_date=req.selection.selected_date,
    )
    contact = ContactDraft(
        name=req.contact.name,
        phone=req.contact.phone,
        email=req.contact.email,
        birth_date=req.contact.birth_date,
        referral=req.contact.referral,
        referral_other=req.contact.referral_other,
        notes=req.contact.notes,
    )

    wizard = build_wizard(locale=req.locale)
    draft = await wizard.submit_contact(selection, contact)
    if draft is None:
        error = wizard.error
        await wizard.close()
        detail: dict[str, object] = {"code": error.code, "message": error.message}
        if isinstance(error, BookingValidationError):
            detail["fields"] = error.fields
        raise HTTPException(status_code=_status_for(error), detail=detail)

    session_id = store.create(wizard)
    logger.info("Booking session created", extra={"draft_id": draft.draft_id})
    return _session(session_id, wizard)


@router.get("/sessions/{session_id}", response_model=SessionSchema)
def get_session(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    return _session(session_id, _get_wizard(session_id, store))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    wizard = store.remove(session_id)
    if wizard is None:
        raise HTTPException(status_code=404, detail="Session not found")
    await wizard.close()


@router.post("/sessions/{session_id}/verification", response_model=SessionSchema)
async def start_verification(
    session_id: str,
    req: StartVerificationRequestSchema,
    store: WizardStorePort = Depends(get_wizard_store),
):
    wizard = _get_wizard(session_id, store)
    await wizard.start_verification(req.channel)
    return _session(session_id, wizard)


@router.delete("/sessions/{session_id}/verification", response_model=SessionSchema)
async def cancel_verification(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    wizard = _get_wizard(session_id, store)
    await wizard.cancel_verification()
    return _session(session_id, wizard)


@router.post("/sessions/{session_id}/verification/complete", response_model=SessionSchema)
async def complete_verification(
    session_id: str,
    req: CompleteVerificationRequestSchema,
    store: WizardStorePort = Depends(get_wizard_store),
):
    wizard = _get_wizard(session_id, store)
    if req.appointment_id is not None and not _relay_enabled():
        raise HTTPException(status_code=403, detail="Appointment ids are only accepted from the browser relay")
    await wizard.complete_out_of_band(req.reference, req.appointment_id)
    return _session(session_id, wizard)


@router.post("/sessions/{session_id}/window-message", status_code=202)
async def window_message(
    session_id: str,
    req: WindowMessageRequestSchema,
    origin: str | None = Header(None),
    store: WizardStorePort = Depends(get_wizard_store),
):
    if not _relay_enabled():
        raise HTTPException(status_code=404, detail="Window message relay is disabled")
    wizard = _get_wizard(session_id, store)
    # Origin filtering happens in the auth bridge listener.
    wizard.browser.dispatch_message(origin or "", req.data)
    return {"accepted": True}


@router.post("/sessions/{session_id}/payment/method", response_model=SessionSchema)
async def select_payment_method(
    session_id: str,
    req: SelectMethodRequestSchema,
    store: WizardStorePort = Depends(get_wizard_store),
):
    wizard = _get_wizard(session_id, store)
    await wizard.select_method(req.method)
    return _session(session_id, wizard)


@router.post("/sessions/{session_id}/payment/retry", response_model=SessionSchema)
async def retry_payment(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    wizard = _get_wizard(session_id, store)
    await wizard.retry_payment()
    return _session(session_id, wizard)


@router.post("/sessions/{session_id}/payment/onsite/confirm", response_model=SessionSchema)
async def confirm_onsite(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    wizard = _get_wizard(session_id, store)
    await wizard.confirm_onsite()
    return _session(session_id, wizard)


@router.post("/sessions/{session_id}/payment/stripe/result", response_model=SessionSchema)
async def stripe_result(
    session_id: str,
    req: StripeResultRequestSchema,
    store: WizardStorePort = Depends(get_wizard_store),
):
    wizard = _get_wizard(session_id, store)
    if req.succeeded:
        wizard.stripe_succeeded(req.payment_intent_id)
    else:
        wizard.stripe_failed(req.message)
    return _session(session_id, wizard)


@router.post("/sessions/{session_id}/payment/paypal/order", response_model=PaypalOrderResponseSchema)
async def paypal_order(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    wizard = _get_wizard(session_id, store)
    order_id = await wizard.paypal_create_order()
    return PaypalOrderResponseSchema(order_id=order_id, session=_session(session_id, wizard))


@router.post("/sessions/{session_id}/payment/paypal/approve", response_model=SessionSchema)
async def paypal_approve(
    session_id: str,
    req: PaypalApproveRequestSchema,
    store: WizardStorePort = Depends(get_wizard_store),
):
    wizard = _get_wizard(session_id, store)
    await wizard.paypal_approve(req.order_id)
    return _session(session_id, wizard)


@router.get("/sessions/{session_id}/calendar", response_model=CalendarLinksSchema)
async def calendar_links(session_id: str, store: WizardStorePort = Depends(get_wizard_store)):
    wizard = _get_wizard(session_id, store)
    links = await wizard.calendar_links()
    if links is None:
        raise HTTPException(status_code=409, detail="Calendar export is available after payment")
    return CalendarLinksSchema(ics_url=links.ics_url, google_url=links.google_url)
