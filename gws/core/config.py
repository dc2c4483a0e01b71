from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "GWS Automation API"
    LOG_LEVEL: str = "INFO"
    BASE_URL: str = "http://localhost:3000"
    BUSINESS_NAME: str = "Great White Security"
    CONTACT_PHONE: str = "0413 346 978"

    # Operator who receives availability/lead notifications
    ADMIN_PHONE: Optional[str] = None
    # Gate for admin JSON endpoints; open when unset
    ADMIN_API_TOKEN: Optional[str] = None

    # Record Store (Airtable)
    AIRTABLE_API_KEY: Optional[str] = None
    AIRTABLE_BASE_ID: Optional[str] = None
    AIRTABLE_API_URL: str = "https://api.airtable.com/v0"
    AIRTABLE_ENGAGEMENTS_TABLE: str = "Engagements"
    AIRTABLE_TECHS_TABLE: str = "Techs"
    AIRTABLE_MESSAGES_TABLE: str = "Messages"

    # Notifier (Twilio)
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"
    TWILIO_VALIDATE_SIGNATURE: bool = False

    # Payment Gateway (Stripe)
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_API_URL: str = "https://api.stripe.com/v1"
    STRIPE_CURRENCY: str = "aud"
    STRIPE_SUCCESS_URL: str = "http://localhost:3000/payment-success"
    STRIPE_CANCEL_URL: str = "http://localhost:3000/payment-cancelled"

    # Asset Store (Cloudinary)
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_API_URL: str = "https://api.cloudinary.com/v1_1"
    CLOUDINARY_FOLDER: str = "gws-jobs"

    # Link stores: "memory" (lost on restart) or "sql"
    LINK_STORE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite:///./gws_links.db"
    SHORT_LINK_RETENTION_DAYS: int = 7
    AVAILABILITY_CODE_RETENTION_DAYS: int = 30

    # Background loops
    SWEEP_INTERVAL_SECONDS: int = 86400
    STATUS_SWEEP_INTERVAL_SECONDS: int = 900

    # Rate limiting for /api paths; disabled when REDIS_URL is unset
    REDIS_URL: Optional[str] = None
    RATE_LIMIT_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 60

    HTTP_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_COUNTRY_CODE: str = "61"

    class Config:
        env_file = ".env"


settings = Settings()
