from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable by ``CASEBOOK_``-prefixed environment variables."""

    model_config = SettingsConfigDict(env_prefix="CASEBOOK_")

    app_name: str = "Casebook"
    api_version: str = "1.0.0"
    environment: str = "development"
    secret_key: str = "CHANGE_ME"
    access_token_expire_minutes: int = 30
    database_url: str = "sqlite:///./casebook.db"
    log_level: str = "INFO"

    # Billing behaviour
    sequence_width: int = 6
    derive_overdue: bool = True
    recompute_on_payment_delete: bool = True
    default_currency: str = "PHP"


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
