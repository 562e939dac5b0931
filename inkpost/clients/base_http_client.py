# clients/base_http_client.py
import requests
import re

from typing import Dict, Any, Optional
from urllib.parse import urljoin
from abc import ABC
from inkpost.utils.log import app_logger


def sanitize_error(exc: Exception) -> str:
    """str(exc) without memory addresses like <HTTPSConnection(...) at 0x...>"""
    return re.sub(r'0x[0-9a-fA-F]+', '<ptr>', str(exc))


class BaseHTTPClient(ABC):
    """Base HTTP client with common functionalities like GET, POST and error logging.

    Requests are issued exactly once: failures are logged and re-raised so the
    caller decides what the user sees. Nothing here retries on its own.
    """

    def __init__(self,
                 base_url: str,
                 api_key: Optional[str] = None,
                 timeout: int = 30,
                 content_type: Optional[str] = 'application/json',
                 accept: Optional[str] = 'application/json',
                 session: Optional[requests.Session] = None,
                 ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.content_type = content_type
        self.accept = accept
        self.session = session or requests.Session()

        # setup default headers
        self._setup_default_headers()

    USER_AGENT = "inkpost/0.1 (+python-requests)"

    def _setup_default_headers(self):
        """setup default headers for the client"""
        self.session.headers.update({
            'User-Agent': self.USER_AGENT,
            'Accept': self.accept,
            'Content-Type': self.content_type,
        })

        # add authentication header if api_key is provided
        if self.api_key:
            self._setup_authentication()

    def _setup_authentication(self):
        """setup authentication with API key (can be overridden)"""
        pass

    def _build_url(self, endpoint: str) -> str:
        """build full URL"""
        return urljoin(f"{self.base_url}/", endpoint.lstrip('/'))

    def _make_request(self, method: str, endpoint: str,
                     params: Optional[Dict] = None,
                     data: Optional[Any] = None,
                     headers: Optional[Dict] = None) -> Any:
        """do a single HTTP request and decode the JSON body"""
        url = self._build_url(endpoint)
        request_headers = headers or {}

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                headers=request_headers,
                timeout=self.timeout
            )

            # debug log for non-success status codes (we'll still raise below)
            if response.status_code >= 400:
                app_logger.debug("request.status", method=method, url=url, status_code=response.status_code)

            response.raise_for_status()

            if not response.content:
                return None

            # try to parse json response
            try:
                return response.json()
            except ValueError:
                app_logger.debug("request.parse_text", url=url, length=len(response.text))
                return {'text': response.text}

        except requests.exceptions.RequestException as e:
            exc_type = type(e).__name__
            app_logger.error("request.failed", method=method, url=url, exc_type=exc_type, error=sanitize_error(e))
            raise

    def get(self, endpoint: str, params: Optional[Dict] = None,
            headers: Optional[Dict] = None) -> Any:
        """do GET request"""
        return self._make_request('GET', endpoint, params=params, headers=headers)

    def post(self, endpoint: str, data: Optional[Any] = None,
             params: Optional[Dict] = None,
             headers: Optional[Dict] = None) -> Any:
        """do POST request"""
        return self._make_request('POST', endpoint, params=params, data=data, headers=headers)

    def close(self):
        """close HTTP session"""
        self.session.close()
