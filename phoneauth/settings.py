from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_SIGNING_KEY = "dev-only-signing-key"


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    database_timeout_seconds: int = 5
    redis_url: str = "redis://redis:6379/0"
    redis_socket_timeout_seconds: float = 5.0

    # Tokens
    jwt_signing_key: str = DEV_SIGNING_KEY
    jwt_access_ttl_seconds: int = 900
    jwt_refresh_ttl_seconds: int = 30 * 24 * 3600

    # OTP policies
    otp_length: int = 6
    otp_ttl_seconds: int = 180
    otp_resend_cooldown_seconds: int = 60
    otp_max_attempts: int = 5
    otp_send_limit_per_phone: int = 10
    otp_send_limit_per_ip: int = 30
    otp_send_window_seconds: int = 3600
    registration_session_ttl_seconds: int = 900

    # Security
    bcrypt_rounds: int = 12

    # Delivery gateway
    telegram_gateway_base_url: str = "https://gatewayapi.telegram.org"
    telegram_gateway_token: str = ""
    telegram_gateway_sender: str = ""
    gateway_timeout_seconds: float = 8.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    def check_production_ready(self) -> None:
        """Refuse to run prod with the development signing key."""
        if self.app_env.lower() == "prod" and self.jwt_signing_key == DEV_SIGNING_KEY:
            raise RuntimeError("JWT_SIGNING_KEY must be set when APP_ENV=prod")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
