"""
OAuth token refresh against claude's token endpoint.

the endpoint reports a dead refresh token only as the text `invalid_grant`
somewhere in an error body. that match happens here and nowhere else; the
rest of the package only sees a RefreshResult.
"""
import logging
import time
from typing import Annotated, Literal, Optional, Union

import httpx
from pydantic import BaseModel, Field

from .models import OAuthCredentials

logger = logging.getLogger(__name__)

TOKEN_URL = "https://platform.claude.com/v1/oauth/token"
CLIENT_ID = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"
SCOPES = "user:profile user:inference user:sessions:claude_code user:mcp_servers"
BETA_HEADER = "oauth-2025-04-20"

DEFAULT_EXPIRES_IN = 3600  # seconds
EXPIRY_BUFFER_MS = 5 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def is_expired(credentials: OAuthCredentials, now: Optional[int] = None) -> bool:
    """true once we're within five minutes of the access token's expiry."""
    if now is None:
        now = now_ms()
    return now + EXPIRY_BUFFER_MS >= credentials.expires_at


class Refreshed(BaseModel):
    kind: Literal["refreshed"] = "refreshed"
    credentials: OAuthCredentials


class InvalidGrant(BaseModel):
    """the refresh token itself was rejected; only a new login will help."""
    kind: Literal["invalid_grant"] = "invalid_grant"


class TransientFailure(BaseModel):
    kind: Literal["transient"] = "transient"
    message: str
    status_code: Optional[int] = None


RefreshResult = Annotated[
    Union[Refreshed, InvalidGrant, TransientFailure],
    Field(discriminator="kind"),
]


class TokenRefresher:
    """exchanges a refresh token for a new access token. one request, no retries."""

    def __init__(self, client: Optional[httpx.Client] = None, token_url: str = TOKEN_URL):
        # a caller-supplied client is left open; otherwise each refresh opens and closes its own
        self.client = client
        self.token_url = token_url

    def _post(self, client: httpx.Client, credentials: OAuthCredentials) -> httpx.Response:
        return client.post(
            self.token_url,
            headers={"anthropic-beta": BETA_HEADER},
            json={
                "grant_type": "refresh_token",
                "refresh_token": credentials.refresh_token,
                "client_id": CLIENT_ID,
                "scope": SCOPES,
            },
        )

    def refresh(self, credentials: OAuthCredentials, now: Optional[int] = None) -> RefreshResult:
        logger.debug(f"refreshing access token via {self.token_url}")

        try:
            if self.client is not None:
                response = self._post(self.client, credentials)
            else:
                with httpx.Client() as client:
                    response = self._post(client, credentials)
        except httpx.HTTPError as e:
            return TransientFailure(message=f"HTTP request failed: {e}")

        if not response.is_success:
            body = response.text
            if "invalid_grant" in body:
                logger.debug(f"token endpoint returned invalid_grant ({response.status_code})")
                return InvalidGrant()
            return TransientFailure(
                message=f"token refresh failed ({response.status_code}): {body}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            return TransientFailure(
                message=f"failed to parse JSON response: {e}",
                status_code=response.status_code,
            )

        if not isinstance(payload, dict) or not isinstance(payload.get("access_token"), str):
            return TransientFailure(
                message="missing access_token in refresh response",
                status_code=response.status_code,
            )

        refresh_token = payload.get("refresh_token")
        if not isinstance(refresh_token, str):
            refresh_token = credentials.refresh_token

        expires_in = payload.get("expires_in")
        if not isinstance(expires_in, int) or isinstance(expires_in, bool):
            expires_in = DEFAULT_EXPIRES_IN

        if now is None:
            now = now_ms()

        # scopes and tiers are never taken from the response
        refreshed = credentials.model_copy(update={
            "access_token": payload["access_token"],
            "refresh_token": refresh_token,
            "expires_at": now + expires_in * 1000,
        })
        return Refreshed(credentials=refreshed)

