import asyncio
from typing import Any, Dict, Optional

import requests

from inkpost.clients.auth_client import AuthClient
from inkpost.clients.base_http_client import sanitize_error
from inkpost.core.exceptions.exceptions import AuthenticationError, ExternalAPIError
from inkpost.utils.log import app_logger

INVALID_CREDENTIALS = "Invalid email or password"
LOGIN_FAILED = "Login failed, please try again"


class AuthService:
    """Identity state for one request: the signed-in user, the last login error, a loading flag.

    The identity itself is owned by the hosted backend; this only forwards
    credentials and tokens to it.
    """

    def __init__(self, client: Optional[AuthClient] = None):
        self.client = client or AuthClient()
        self.user: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.is_loading = False

    def clear_error(self) -> None:
        self.error = None

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Sign in; returns the backend session (access_token, user) or raises AuthenticationError."""
        self.clear_error()
        if not (email or "").strip() or not (password or "").strip():
            raise AuthenticationError("Please enter email and password")

        self.is_loading = True
        try:
            session = await asyncio.to_thread(self.client.sign_in_with_password, email.strip(), password)
        except requests.exceptions.HTTPError as e:
            self.error = INVALID_CREDENTIALS
            app_logger.info("auth.login_rejected", email=email, status=getattr(e.response, "status_code", None))
            raise AuthenticationError(self.error)
        except requests.exceptions.RequestException as e:
            self.error = LOGIN_FAILED
            app_logger.error("auth.login_failed", email=email, error=sanitize_error(e))
            raise ExternalAPIError("auth", sanitize_error(e))
        finally:
            self.is_loading = False

        if not session or not session.get("access_token"):
            self.error = LOGIN_FAILED
            raise AuthenticationError(self.error)
        self.user = session.get("user") or {}
        app_logger.info("auth.login", user_id=self.user.get("id"))
        return session

    async def current_user(self, access_token: Optional[str]) -> Optional[Dict[str, Any]]:
        """User owning `access_token`, or None for a missing, expired or unknown token."""
        if not access_token:
            return None
        try:
            user = await asyncio.to_thread(self.client.get_user, access_token)
        except requests.exceptions.HTTPError:
            return None
        except requests.exceptions.RequestException as e:
            raise ExternalAPIError("auth", sanitize_error(e))
        self.user = user or None
        return self.user

    async def logout(self, access_token: str) -> None:
        try:
            await asyncio.to_thread(self.client.sign_out, access_token)
        except requests.exceptions.RequestException as e:
            raise ExternalAPIError("auth", sanitize_error(e))
        finally:
            self.user = None
