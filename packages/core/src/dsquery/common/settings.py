from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env into os.environ
load_dotenv()


class Settings(BaseSettings):
    """Gateway client configuration backed by environment variables."""

    grafana_url: str = Field(
        default="http://localhost:3000",
        validation_alias="GRAFANA_URL",
        description="Base URL of the Grafana instance brokering datasource queries.",
    )
    grafana_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("GRAFANA_SERVICE_ACCOUNT_TOKEN", "GRAFANA_API_KEY"),
        description="Service account token sent as a Bearer credential.",
    )
    grafana_access_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias="GRAFANA_ACCESS_TOKEN",
        description="On-behalf-of access token; used together with GRAFANA_ID_TOKEN.",
    )
    grafana_id_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias="GRAFANA_ID_TOKEN",
        description="On-behalf-of user id token; used together with GRAFANA_ACCESS_TOKEN.",
    )

    gateway_timeout_sec: float = Field(
        default=30.0,
        validation_alias="GATEWAY_TIMEOUT_SEC",
        description="Timeout in seconds for a single gateway request/response cycle.",
    )
    default_row_limit: int = Field(
        default=10000,
        validation_alias="DEFAULT_ROW_LIMIT",
        description="Row limit applied by adapters when the request carries none.",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(
        default=False,
        validation_alias="LOG_JSON",
        description="Emit JSON log lines instead of plain text.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def configure_env(self, env: str) -> None:
        """Loads environment-specific variables and reloads settings."""
        if not env:
            return

        load_dotenv(f".env.{env}", override=True)
        new_settings = Settings()
        self.__dict__.update(new_settings.__dict__)


settings = Settings()
