import pytest
from pydantic import ValidationError

from casebook.app.core.settings import Settings, get_settings


def test_settings_defaults():
    settings = get_settings()
    assert settings.app_name == "Casebook"
    assert isinstance(settings.secret_key, str) and settings.secret_key
    assert isinstance(settings.database_url, str) and settings.database_url
    assert settings.sequence_width == 6


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("CASEBOOK_DERIVE_OVERDUE", "false")
    monkeypatch.setenv("CASEBOOK_RECOMPUTE_ON_PAYMENT_DELETE", "0")
    monkeypatch.setenv("CASEBOOK_DEFAULT_CURRENCY", "USD")
    settings = Settings()
    assert settings.derive_overdue is False
    assert settings.recompute_on_payment_delete is False
    assert settings.default_currency == "USD"


@pytest.mark.parametrize(
    "name, value",
    [
        ("CASEBOOK_DERIVE_OVERDUE", "ture"),
        ("CASEBOOK_RECOMPUTE_ON_PAYMENT_DELETE", "enabled"),
        ("CASEBOOK_SEQUENCE_WIDTH", "six"),
    ],
)
def test_malformed_environment_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()
