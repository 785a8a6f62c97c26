"""
Pydantic schemas for the token authority responses.
"""

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """OAuth2 token endpoint response."""

    access_token: str = Field(..., description="Bearer access token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(default=3600, description="Expiration in seconds")
    refresh_token: str | None = Field(None, description="Refresh token (delegated only)")
    scope: str | None = Field(None, description="Granted scopes")


class TokenErrorResponse(BaseModel):
    """OAuth2 error payload returned by the authority."""

    error: str = Field(default="unknown_error", description="OAuth2 error code")
    error_description: str | None = Field(None, description="Human readable reason")

    @property
    def reason(self) -> str:
        return self.error_description or self.error


class DeviceCodeResponse(BaseModel):
    """Device authorization endpoint response."""

    device_code: str = Field(..., description="Code the client polls with")
    user_code: str = Field(..., description="Code the user enters")
    verification_uri: str = Field(..., description="Where the user signs in")
    expires_in: int = Field(default=900, description="Lifetime of the device code")
    interval: int = Field(default=5, description="Minimum polling interval in seconds")
    message: str | None = Field(None, description="Prompt to show the user")
