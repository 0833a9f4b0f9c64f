"""Application configuration."""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class SchedulingPolicy:
    """Booking rules applied by the validation and conflict engines."""

    clinic_timezone: str = "UTC"
    booking_min_hours: int = 24
    booking_max_hours: int = 48
    business_hours_start: int = 9
    business_hours_end: int = 18
    conflict_window_minutes: int = 30
    patient_cancellation_notice_hours: int = 24
    meeting_duration_minutes: int = 30


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="MedBook Scheduling API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis
    redis_host: str = Field(..., alias="REDIS_HOST")
    redis_port: int = Field(..., alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # JWT
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Firebase (push notifications)
    firebase_credentials_path: str | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description="Path to Firebase service account JSON file",
    )
    firebase_config_json: str | None = Field(
        default=None,
        alias="FIREBASE_CONFIG_JSON",
        description="Raw JSON string of the Firebase service account",
    )

    # Scheduling rules
    clinic_timezone: str = Field(default="UTC", alias="CLINIC_TIMEZONE")
    booking_min_hours: int = Field(default=24, alias="BOOKING_MIN_HOURS")
    booking_max_hours: int = Field(default=48, alias="BOOKING_MAX_HOURS")
    business_hours_start: int = Field(default=9, ge=0, le=23, alias="BUSINESS_HOURS_START")
    business_hours_end: int = Field(default=18, ge=1, le=24, alias="BUSINESS_HOURS_END")
    conflict_window_minutes: int = Field(default=30, ge=1, alias="CONFLICT_WINDOW_MINUTES")
    patient_cancellation_notice_hours: int = Field(
        default=24, alias="PATIENT_CANCELLATION_NOTICE_HOURS"
    )
    meeting_duration_minutes: int = Field(default=30, alias="MEETING_DURATION_MINUTES")

    # External collaborators
    collaborator_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        alias="COLLABORATOR_TIMEOUT_SECONDS",
        description="Upper bound for every payment/meeting/notification/reminder call",
    )

    # Stripe (refunds)
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_api_base: str = Field(default="https://api.stripe.com/v1", alias="STRIPE_API_BASE")

    # Zoom (online consultations)
    zoom_account_id: str = Field(default="", alias="ZOOM_ACCOUNT_ID")
    zoom_client_id: str = Field(default="", alias="ZOOM_CLIENT_ID")
    zoom_client_secret: str = Field(default="", alias="ZOOM_CLIENT_SECRET")
    zoom_api_base: str = Field(default="https://api.zoom.us/v2", alias="ZOOM_API_BASE")
    zoom_oauth_url: str = Field(default="https://zoom.us/oauth/token", alias="ZOOM_OAUTH_URL")

    # Resend (notification emails)
    resend_api_key: str = Field(default="", alias="RESEND_API_KEY")
    email_from_address: str = Field(
        default="MedBook <noreply@medbook.app>",
        alias="EMAIL_FROM_ADDRESS",
    )

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def scheduling_policy(self) -> SchedulingPolicy:
        """Scheduling rules as an immutable value object."""
        return SchedulingPolicy(
            clinic_timezone=self.clinic_timezone,
            booking_min_hours=self.booking_min_hours,
            booking_max_hours=self.booking_max_hours,
            business_hours_start=self.business_hours_start,
            business_hours_end=self.business_hours_end,
            conflict_window_minutes=self.conflict_window_minutes,
            patient_cancellation_notice_hours=self.patient_cancellation_notice_hours,
            meeting_duration_minutes=self.meeting_duration_minutes,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
