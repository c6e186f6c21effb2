from functools import lru_cache
import logging

from app.core.config import settings
from app.application.ports.booking_backend import BookingBackendPort
from app.application.ports.browser import BrowserPort
from app.application.ports.payment_gateway import PaymentGatewayPort
from app.application.ports.wizard_store import WizardStorePort
from app.application.use_cases.booking_wizard import BookingWizard
from app.infrastructure.backend.api_client import BookingApiClient
from app.infrastructure.backend.http_backend import HttpBookingBackend
from app.infrastructure.backend.http_payment import HttpPaymentGateway
from app.infrastructure.backend.mock_backend import MockBookingBackend
from app.infrastructure.backend.mock_payment import MockPaymentGateway
from app.infrastructure.browser.mock_browser import MockBrowser
from app.infrastructure.browser.playwright_browser import PlaywrightBrowser
from app.infrastructure.store.memory_store import MemoryWizardStore


def _use_mock_backend() -> bool:
    return settings.BACKEND_PROVIDER.lower() == "mock" or settings.ENV.lower() == "test"


@lru_cache
def get_api_client() -> BookingApiClient:
    return BookingApiClient(settings.BOOKING_API_BASE_URL, timeout=settings.BOOKING_API_TIMEOUT_SECONDS)


@lru_cache
def get_booking_backend() -> BookingBackendPort:
    if _use_mock_backend():
        logging.getLogger(__name__).info("Using MockBookingBackend")
        return MockBookingBackend()
    return HttpBookingBackend(client=get_api_client())


@lru_cache
def get_payment_gateway() -> PaymentGatewayPort:
    if _use_mock_backend():
        logging.getLogger(__name__).info("Using MockPaymentGateway")
        return MockPaymentGateway()
    return HttpPaymentGateway(client=get_api_client())


@lru_cache
def get_wizard_store() -> WizardStorePort:
    return MemoryWizardStore()


def build_browser() -> BrowserPort:
    if settings.BROWSER_PROVIDER.lower() == "playwright":
        return PlaywrightBrowser(start_url=settings.APP_BASE_URL, headless=settings.PLAYWRIGHT_HEADLESS)
    return MockBrowser()


def build_wizard(browser: BrowserPort | None = None, locale: str | None = None) -> BookingWizard:
    return BookingWizard(
        backend=get_booking_backend(),
        gateway=get_payment_gateway(),
        browser=browser or build_browser(),
        app_origin=settings.APP_ORIGIN,
        app_base_url=settings.APP_BASE_URL,
        calendar_base_url=settings.BOOKING_API_BASE_URL,
        locale=locale or settings.DEFAULT_LOCALE,
        poll_interval=settings.VERIFICATION_POLL_INTERVAL_SECONDS,
        poll_timeout=settings.VERIFICATION_POLL_TIMEOUT_SECONDS,
        popup_width=settings.AUTH_POPUP_WIDTH,
        popup_height=settings.AUTH_POPUP_HEIGHT,
        min_age=settings.MIN_CLIENT_AGE,
        default_amount_cents=settings.DEFAULT_PAYMENT_AMOUNT_CENTS,
        salon_name=settings.SALON_NAME,
        salon_location=settings.SALON_LOCATION,
    )
