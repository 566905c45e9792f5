import pytest
from pydantic import ValidationError

from dsquery.common.settings import Settings
from dsquery.gateway.context import GatewayContext


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "GRAFANA_URL",
        "GRAFANA_SERVICE_ACCOUNT_TOKEN",
        "GRAFANA_API_KEY",
        "GRAFANA_ACCESS_TOKEN",
        "GRAFANA_ID_TOKEN",
        "GATEWAY_TIMEOUT_SEC",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings(_env_file=None)

    assert settings.grafana_url == "http://localhost:3000"
    assert settings.grafana_api_key is None
    assert settings.gateway_timeout_sec == 30.0
    assert settings.default_row_limit == 10000


@pytest.mark.parametrize("variable", ["GRAFANA_SERVICE_ACCOUNT_TOKEN", "GRAFANA_API_KEY"])
def test_api_key_aliases(clean_env, variable):
    clean_env.setenv(variable, "svc-token")

    settings = Settings(_env_file=None)

    assert settings.grafana_api_key.get_secret_value() == "svc-token"


def test_context_from_settings(clean_env):
    # Arrange
    clean_env.setenv("GRAFANA_URL", "https://grafana.example.com/")
    clean_env.setenv("GRAFANA_ACCESS_TOKEN", "acc")
    clean_env.setenv("GRAFANA_ID_TOKEN", "idt")
    clean_env.setenv("GATEWAY_TIMEOUT_SEC", "12.5")

    # Act
    ctx = GatewayContext.from_settings(Settings(_env_file=None))

    # Assert
    assert ctx.url == "https://grafana.example.com"
    assert ctx.timeout_sec == 12.5
    assert ctx.credentials.has_on_behalf_of
    assert ctx.credentials.api_key_value == ""
    assert not ctx.is_cancelled


def test_overrides_win_and_none_is_ignored(clean_env):
    ctx = GatewayContext.from_settings(Settings(_env_file=None), url="http://other:3000", timeout_sec=None)

    assert ctx.url == "http://other:3000"
    assert ctx.timeout_sec == 30.0


def test_empty_url_is_rejected():
    with pytest.raises(ValidationError):
        GatewayContext(url="")
