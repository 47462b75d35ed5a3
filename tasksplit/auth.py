"""Google OAuth 2.0 sign-in flow backed by a signed session cookie."""

from __future__ import annotations

import logging
import secrets
from typing import Any
from urllib.parse import urlencode

import httpx
from fastapi import Query, Request
from fastapi.responses import RedirectResponse

from tasksplit.errors import AppError, NotAuthenticated, UpstreamError, success_response
from tasksplit.router import api_router
from tasksplit.user_scope import SESSION_USER_KEY, session_user

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = "openid email profile"

OAUTH_STATE_KEY = "oauth_state"
OAUTH_CALLBACK_KEY = "oauth_callback"

logger = logging.getLogger(__name__)


def _safe_callback(callback_url: str | None) -> str:
    # Only same-site relative paths; anything else could redirect off-site.
    if not callback_url or not callback_url.startswith("/") or callback_url.startswith("//"):
        return "/"
    return callback_url


def _require_oauth_config(request: Request) -> Any:
    config = request.app.state.config
    if not config.google_client_id or not config.google_client_secret:
        raise AppError(
            "Google sign-in is not configured.",
            {"settings": ["GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"]},
            code="AUTH_NOT_CONFIGURED",
        )
    return config


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise UpstreamError(
            "Google returned a non-JSON response",
            status=response.status_code,
            service="google",
        ) from exc
    return body if isinstance(body, dict) else {}


def _exchange_code(
    request: Request, code: str, redirect_uri: str
) -> dict[str, Any]:
    """Trade an authorization code for the signed-in user's profile."""
    config = _require_oauth_config(request)
    transport = getattr(request.app.state, "oauth_transport", None)
    with httpx.Client(timeout=config.todoist_timeout, transport=transport) as http:
        try:
            token_response = http.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": config.google_client_id,
                    "client_secret": config.google_client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            if not token_response.is_success:
                raise UpstreamError(
                    "Failed to exchange authorization code",
                    status=token_response.status_code,
                    service="google",
                )
            access_token = _json_body(token_response).get("access_token")
            if not access_token:
                raise UpstreamError(
                    "Token response had no access token",
                    status=token_response.status_code,
                    service="google",
                )
            profile_response = http.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Google sign-in request failed: %s", exc)
            raise UpstreamError(
                f"Google sign-in failed: {exc.__class__.__name__}", service="google"
            ) from exc

    if not profile_response.is_success:
        raise UpstreamError(
            "Failed to read Google profile",
            status=profile_response.status_code,
            service="google",
        )
    profile = _json_body(profile_response)
    if not profile.get("sub"):
        raise UpstreamError(
            "Google profile had no subject",
            status=profile_response.status_code,
            service="google",
        )
    return profile


@api_router.get("/api/auth/signin")
def signin(
    request: Request, callback_url: str | None = Query(default=None, alias="callbackUrl")
) -> RedirectResponse:
    """Start the Google authorization-code flow."""
    config = _require_oauth_config(request)
    state = secrets.token_urlsafe(32)
    request.session[OAUTH_STATE_KEY] = state
    request.session[OAUTH_CALLBACK_KEY] = _safe_callback(callback_url)
    params = urlencode(
        {
            "client_id": config.google_client_id,
            "redirect_uri": str(request.url_for("google_callback")),
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "state": state,
            "prompt": "select_account",
        }
    )
    return RedirectResponse(f"{GOOGLE_AUTHORIZE_URL}?{params}", status_code=302)


@api_router.get("/api/auth/callback/google", name="google_callback")
def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Finish sign-in and store the user in the session."""
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)
    target = _safe_callback(request.session.pop(OAUTH_CALLBACK_KEY, None))
    if error:
        raise NotAuthenticated("Sign-in was cancelled.", {"error": error})
    if not code or not state or not expected_state or state != expected_state:
        raise NotAuthenticated("Invalid sign-in state.")

    profile = _exchange_code(request, code, str(request.url_for("google_callback")))
    request.session[SESSION_USER_KEY] = {
        "id": str(profile["sub"]),
        "email": profile.get("email"),
        "name": profile.get("name"),
    }
    logger.info("User %s signed in", profile["sub"])
    return RedirectResponse(target, status_code=302)


@api_router.get("/api/auth/session")
def current_session(request: Request) -> dict[str, Any]:
    return success_response({"user": session_user(request.session)})


@api_router.post("/api/auth/signout")
def signout(request: Request) -> dict[str, Any]:
    request.session.clear()
    return success_response({"signedOut": True})
