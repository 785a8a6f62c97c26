"""
Mail adapter configuration with environment-driven settings.

The presence of a client secret selects the application (client-credential)
trust model; without one the adapter acts on behalf of a signed-in user.
"""

from functools import lru_cache
from urllib.parse import quote

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"


class GraphMailConfig(BaseSettings):
    """Graph mail adapter configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="GRAPH_MAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application registration
    app_id: str = Field(default="", description="Application (client) ID")
    tenant_id: str = Field(default="", description="Directory (tenant) ID")
    client_secret: str = Field(
        default="",
        description="Client secret; leave empty for delegated (signed-in user) mode",
    )

    # Remote service behaviour
    save_sent_items: bool = Field(
        default=False,
        description="Ask the service to keep a copy in the sender's Sent Items",
    )

    # Endpoints
    authority_host: str = Field(default="https://login.microsoftonline.com")
    graph_base_url: str = Field(default="https://graph.microsoft.com/v1.0")

    # Delegated scopes (application mode always uses the .default scope)
    scopes: str = Field(
        default="Mail.Send offline_access",
        description="Space-separated delegated permission scopes",
    )

    # Timeouts
    request_timeout_seconds: float = Field(default=30.0, ge=1, le=300)
    token_refresh_leeway_seconds: int = Field(default=300, ge=0, le=3600)
    device_code_timeout_seconds: int = Field(default=900, ge=30, le=3600)

    log_level: str = "INFO"

    @field_validator("authority_host", "graph_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def uses_application_credential(self) -> bool:
        return bool(self.client_secret)

    @property
    def scopes_list(self) -> list[str]:
        """Parse delegated scopes into a list."""
        return self.scopes.split()

    def token_url(self, tenant_id: str | None = None) -> str:
        return f"{self.authority_host}/{tenant_id or self.tenant_id}/oauth2/v2.0/token"

    def device_code_url(self, tenant_id: str | None = None) -> str:
        return f"{self.authority_host}/{tenant_id or self.tenant_id}/oauth2/v2.0/devicecode"

    def send_mail_url(self, sender_address: str) -> str:
        return f"{self.graph_base_url}/users/{quote(sender_address, safe='@')}/sendMail"


@lru_cache(maxsize=1)
def get_graph_mail_config() -> GraphMailConfig:
    """Return cached GraphMailConfig loaded from OS env + .env."""
    return GraphMailConfig()
