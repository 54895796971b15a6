from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: str = "localhost"
    PGDATABASE: str = "airline_booking"
    PGUSER: str = "postgres"
    PGPASSWORD: str = "postgres"
    PGSSLMODE: str = "prefer"

    # Security
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Application
    PROJECT_NAME: str = "Airline Seat Inventory & Booking"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Booking engine
    SEAT_HOLD_MINUTES: int = 10
    ROUND_TRIP_DISCOUNT_DEFAULT: int = 10
    TICKET_CODE_MAX_ATTEMPTS: int = 5

    # Mail
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: str = "Airline Booking <no-reply@airline-booking.local>"
    SMTP_USE_TLS: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
