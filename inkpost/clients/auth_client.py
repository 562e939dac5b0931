from typing import Any, Dict, Optional

import requests

from inkpost.clients.base_http_client import BaseHTTPClient
from inkpost.config.settings import settings


class AuthClient(BaseHTTPClient):
    """Client for the hosted backend's identity API (password sign-in only)."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[int] = None, session: Optional[requests.Session] = None):
        super().__init__(
            base_url=base_url if base_url is not None else settings.BACKEND_URL,
            api_key=api_key if api_key is not None else settings.BACKEND_ANON_KEY,
            timeout=timeout or settings.HTTP_TIMEOUT,
            session=session,
        )

    def _setup_authentication(self):
        self.session.headers.update({'apikey': self.api_key})

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        """Returns the session payload: access_token, refresh_token, user."""
        return self.post(
            endpoint="/auth/v1/token",
            params={"grant_type": "password"},
            data={"email": email, "password": password},
        )

    def get_user(self, access_token: str) -> Dict[str, Any]:
        return self.get(
            endpoint="/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"},
        )

    def sign_out(self, access_token: str) -> None:
        self.post(
            endpoint="/auth/v1/logout",
            headers={"Authorization": f"Bearer {access_token}"},
        )
