from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "SkyTour Reservations API"
    # Comma-separated origins for CORS. If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str
    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Heroku-style hosts give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Flight dates and cron windows are evaluated in the heliport's local time
    TIMEZONE: str = "Asia/Tokyo"

    # Booking
    HOLD_MINUTES: int = 30
    TAX_RATE_PERCENT: int = 10
    BOOKING_NUMBER_PREFIX: str = "PST"
    MYPAGE_TOKEN_DAYS: int = 90
    # "<min days>:<refund %>" tiers, longest lead time first
    CANCELLATION_TIERS: str = "7:100,4:70,2:50,0:0"
    OPERATING_HOURS_CACHE_SECONDS: int = 60

    # Notifications
    THANKYOU_LOOKBACK_DAYS: int = 7
    CLIENT_BASE_URL: str = ""  # e.g. https://tour.example.jp, used for mypage links

    EMAIL_BACKEND: str = "console"  # console|smtp|sendgrid
    EMAIL_TIMEOUT_SECONDS: int = 10
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "tour@skytour.local"

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""

    # Payment gateway (refund command + webhook)
    PAYMENT_GATEWAY_URL: str = ""
    PAYMENT_GATEWAY_API_KEY: str = ""
    PAYMENT_TIMEOUT_SECONDS: int = 15
    PAYMENT_WEBHOOK_SECRET: str = ""  # If set, webhook bodies must carry a valid X-Signature
    PAYMENT_GATEWAY_SANDBOX: bool = False  # If True, refunds succeed without calling the gateway

    CRON_SECRET: str = ""


settings = Settings()
