from pydantic_settings import BaseSettings, SettingsConfigDict


class KioskSettings(BaseSettings):
    api_url: str = "http://localhost:8000/api"
    secret: str
    branch_id: str
    branch_label: str | None = None
    timeout_seconds: float = 10.0
    success_countdown_seconds: int = 5
    error_countdown_seconds: int = 10

    model_config = SettingsConfigDict(
        env_prefix="KIOSK_",
        env_file=".env",
        extra="ignore",
    )
