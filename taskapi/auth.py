"""GitHub OAuth login and session helpers.

Sessions are signed cookies managed by Starlette's ``SessionMiddleware``.
After a successful GitHub login the session holds ``{"id", "login", "name"}``
under the ``user`` key; mutating endpoints depend on `require_session`.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import Request
import httpx

from taskapi.config import get_settings
from taskapi.errors import AuthenticationError

logger = logging.getLogger("taskapi.auth")

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"

SESSION_USER_KEY = "user"
SESSION_STATE_KEY = "oauth_state"
UNAUTHENTICATED_MESSAGE = "Please authenticate using GitHub to access this resource"


class GitHubOAuthClient:
    """Minimal GitHub OAuth web-flow client."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.timeout = timeout
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        """Build the GitHub URL the browser is redirected to."""
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.callback_url,
                "scope": "read:user user:email",
                "state": state,
            }
        )
        return f"{GITHUB_AUTHORIZE_URL}?{query}"

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token.

        Raises:
            AuthenticationError: GitHub rejected the code or was unreachable.
        """
        try:
            with self._client() as client:
                response = client.post(
                    GITHUB_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": self.callback_url,
                    },
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("GitHub token exchange failed: %s", exc)
            raise AuthenticationError("GitHub authentication failed", error=str(exc)) from exc

        payload = response.json()
        token = payload.get("access_token")
        if not token:
            error = payload.get("error_description") or payload.get("error") or "no access token"
            logger.warning("GitHub token exchange rejected: %s", error)
            raise AuthenticationError("GitHub authentication failed", error=error)
        return token

    def fetch_user(self, access_token: str) -> dict[str, Any]:
        """Return the GitHub profile of the token owner."""
        try:
            with self._client() as client:
                response = client.get(
                    GITHUB_USER_URL,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/vnd.github+json",
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("GitHub profile request failed: %s", exc)
            raise AuthenticationError("GitHub authentication failed", error=str(exc)) from exc
        return response.json()


def get_github_client() -> GitHubOAuthClient:
    """Dependency returning a client configured from settings."""
    settings = get_settings()
    return GitHubOAuthClient(
        client_id=settings.github_client_id,
        client_secret=settings.github_client_secret,
        callback_url=settings.github_callback_url,
    )


def session_user_from_profile(profile: dict[str, Any]) -> dict[str, Any]:
    """Reduce a GitHub profile to what is stored in the session cookie."""
    login = profile["login"]
    return {"id": profile["id"], "login": login, "name": profile.get("name") or login}


def get_session_user(request: Request) -> dict[str, Any] | None:
    return request.session.get(SESSION_USER_KEY)


def require_session(request: Request) -> dict[str, Any]:
    """Dependency that rejects requests without a logged-in GitHub user."""
    user = get_session_user(request)
    if not user:
        raise AuthenticationError(UNAUTHENTICATED_MESSAGE)
    return user


__all__ = [
    "GitHubOAuthClient",
    "SESSION_STATE_KEY",
    "SESSION_USER_KEY",
    "UNAUTHENTICATED_MESSAGE",
    "get_github_client",
    "get_session_user",
    "require_session",
    "session_user_from_profile",
]
