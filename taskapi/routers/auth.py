"""API router for GitHub login and logout."""

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from taskapi.auth import (
    SESSION_STATE_KEY,
    SESSION_USER_KEY,
    GitHubOAuthClient,
    get_github_client,
    require_session,
    session_user_from_profile,
)
from taskapi.errors import AuthenticationError, ValidationError

router = APIRouter()
logger = logging.getLogger("taskapi.auth")


class SessionUser(BaseModel):
    id: int
    login: str
    name: str


@router.get("/login")
def login(request: Request, github: GitHubOAuthClient = Depends(get_github_client)) -> RedirectResponse:
    """Start the GitHub OAuth flow."""
    state = secrets.token_urlsafe(16)
    request.session[SESSION_STATE_KEY] = state
    return RedirectResponse(github.authorization_url(state), status_code=302)


@router.get("/auth/github/callback")
def github_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    github: GitHubOAuthClient = Depends(get_github_client),
) -> RedirectResponse:
    """Finish the GitHub OAuth flow and store the user in the session."""
    expected_state = request.session.pop(SESSION_STATE_KEY, None)
    if error:
        raise AuthenticationError("GitHub authorization was denied", error=error)
    if not code or not state or state != expected_state:
        raise ValidationError("Invalid OAuth callback state")

    token = github.exchange_code(code)
    user = session_user_from_profile(github.fetch_user(token))
    request.session[SESSION_USER_KEY] = user
    logger.info("GitHub login: %s", user["login"])
    return RedirectResponse("/", status_code=302)


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session."""
    user = request.session.get(SESSION_USER_KEY)
    request.session.clear()
    if user:
        logger.info("Logout: %s", user.get("login"))
    return RedirectResponse("/", status_code=302)


@router.get("/auth/me", response_model=SessionUser)
def current_user(user: dict[str, Any] = Depends(require_session)) -> SessionUser:
    """Return the GitHub identity of the current session."""
    return SessionUser(**user)
