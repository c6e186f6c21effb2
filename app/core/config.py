from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BACKEND_PROVIDER: str = "http"  # "http" | "mock"
    BOOKING_API_BASE_URL: str = "http://localhost:3000"
    BOOKING_API_TIMEOUT_SECONDS: float = 10.0

    APP_BASE_URL: str = "http://localhost:3000"
    APP_ORIGIN: str = "http://localhost:3000"
    DEFAULT_LOCALE: str = "de"

    VERIFICATION_POLL_INTERVAL_SECONDS: float = 2.0
    VERIFICATION_POLL_TIMEOUT_SECONDS: float | None = 900.0

    BROWSER_PROVIDER: str = "mock"  # "mock" | "playwright"
    PLAYWRIGHT_HEADLESS: bool = False
    AUTH_POPUP_WIDTH: int = 500
    AUTH_POPUP_HEIGHT: int = 600

    DEFAULT_PAYMENT_AMOUNT_CENTS: int = 5000
    PAYMENT_CURRENCY: str = "EUR"

    MIN_CLIENT_AGE: int = 16

    SALON_NAME: str = "Salon Elen"
    SALON_LOCATION: str = "Salon Elen, Lessingstrasse 37, 06114 Halle (Saale)"


settings = Settings()
