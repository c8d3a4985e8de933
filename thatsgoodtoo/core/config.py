from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    PROJECT_NAME: str = "That's Good Too API"
    DATABASE_URL: str = "sqlite:///./thatsgoodtoo.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week
    LOG_LEVEL: str = "INFO"

    # Shared secret sent by the external scheduler
    CRON_SECRET: str = "cron_secret_change_me"

    # Coupon rules
    MONTHLY_SHARE_LIMIT: int = 20
    SHARE_COOLDOWN_HOURS: int = 24
    EXPIRING_SOON_DAYS: int = 7

    # Contact form
    CONTACT_RATE_LIMIT: int = 3
    CONTACT_RATE_WINDOW_MINUTES: int = 60

    # Mail
    MAIL_ENABLED: bool = False
    MAIL_USERNAME: str = Field("hello@thatsgoodtoo.shop", validation_alias="MAIL_USERNAME")
    MAIL_PASSWORD: str = Field("", validation_alias="MAIL_PASSWORD")
    MAIL_FROM: str = Field("hello@thatsgoodtoo.shop", validation_alias="MAIL_FROM")
    MAIL_PORT: int = Field(465, validation_alias="MAIL_PORT")
    MAIL_SERVER: str = Field("smtp.thatsgoodtoo.shop", validation_alias="MAIL_SERVER")
    MAIL_SSL: bool = Field(True, validation_alias="MAIL_SSL")
    SUPPORT_EMAIL: str = "support@thatsgoodtoo.shop"
    # Inbox notified about new vendor applications
    ADMIN_EMAIL: str = "connect@thatsgoodtoo.shop"

    SITE_URL: str = "https://thatsgoodtoo.shop"

    @property
    def DASHBOARD_URL(self) -> str:
        return f"{self.SITE_URL}/vendor/dashboard"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
