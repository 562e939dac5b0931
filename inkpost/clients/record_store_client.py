from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from inkpost.clients.base_http_client import BaseHTTPClient, sanitize_error
from inkpost.config.settings import settings
from inkpost.utils.log import app_logger


@dataclass
class StoreResult:
    """Outcome of a record store call: exactly one of `data` / `error` is meaningful."""
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TableQuery:
    """Chainable query against one collection of the hosted REST data API.

    Mirrors the filter/order/range vocabulary of the backend:

        client.table("posts").select("*").eq("is_published", True) \\
              .is_null("column_id").order("created_at", ascending=False) \\
              .range(0, 9).execute()
    """

    def __init__(self, client: "RecordStoreClient", name: str, access_token: Optional[str] = None):
        self.client = client
        self.name = name
        self.access_token = access_token
        self._method = "GET"
        self._columns: Optional[str] = None
        self._body: Optional[Union[Dict, List[Dict]]] = None
        self._filters: List[Tuple[str, str]] = []
        self._order: List[str] = []
        self._offset: Optional[int] = None
        self._limit: Optional[int] = None
        self._single = False

    # -- verbs ---------------------------------------------------------------
    def select(self, columns: str = "*") -> "TableQuery":
        self._columns = columns
        return self

    def insert(self, rows: Union[Dict, List[Dict]]) -> "TableQuery":
        self._method = "POST"
        self._body = rows
        return self

    def update(self, values: Dict) -> "TableQuery":
        self._method = "PATCH"
        self._body = values
        return self

    def delete(self) -> "TableQuery":
        self._method = "DELETE"
        return self

    # -- modifiers -------------------------------------------------------------
    def eq(self, column: str, value: Any) -> "TableQuery":
        self._filters.append((column, f"eq.{_literal(value)}"))
        return self

    def is_null(self, column: str) -> "TableQuery":
        self._filters.append((column, "is.null"))
        return self

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self._order.append(f"{column}.{'asc' if ascending else 'desc'}")
        return self

    def range(self, start: int, end: int) -> "TableQuery":
        """inclusive row range, like the backend's Range header"""
        self._offset = start
        self._limit = end - start + 1
        return self

    def single(self) -> "TableQuery":
        """return the first row (or None) instead of a list"""
        self._single = True
        return self

    # -- execution -------------------------------------------------------------
    def build_params(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if self._columns:
            params.append(("select", self._columns))
        params.extend(self._filters)
        if self._order:
            params.append(("order", ",".join(self._order)))
        if self._offset is not None:
            params.append(("offset", str(self._offset)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        return params

    def build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self._method != "GET":
            headers["Prefer"] = "return=representation"
        return headers

    def execute(self) -> StoreResult:
        endpoint = f"/rest/v1/{self.name}"
        try:
            data = self.client._make_request(
                self._method,
                endpoint,
                params=self.build_params(),
                data=self._body,
                headers=self.build_headers(),
            )
        except requests.exceptions.HTTPError as e:
            detail = _error_detail(e)
            app_logger.warning("store.error", collection=self.name, method=self._method, error=detail)
            return StoreResult(error=detail)
        except requests.exceptions.RequestException as e:
            detail = sanitize_error(e)
            app_logger.warning("store.unreachable", collection=self.name, method=self._method, error=detail)
            return StoreResult(error=detail)

        if self._single:
            if isinstance(data, list):
                data = data[0] if data else None
        elif data is None:
            data = []
        return StoreResult(data=data)


def _error_detail(exc: requests.exceptions.HTTPError) -> str:
    response = exc.response
    if response is None:
        return sanitize_error(exc)
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


class RecordStoreClient(BaseHTTPClient):
    """Client for the hosted backend's REST data API (collections posts, columns, comments)."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[int] = None, session: Optional[requests.Session] = None):
        super().__init__(
            base_url=base_url if base_url is not None else settings.BACKEND_URL,
            api_key=api_key if api_key is not None else settings.BACKEND_ANON_KEY,
            timeout=timeout or settings.HTTP_TIMEOUT,
            session=session,
        )

    def _setup_authentication(self):
        self.session.headers.update({
            'apikey': self.api_key,
            'Authorization': f"Bearer {self.api_key}",
        })

    def table(self, name: str, access_token: Optional[str] = None) -> TableQuery:
        """start a query on collection `name`; `access_token` acts on behalf of a signed-in user"""
        return TableQuery(self, name, access_token=access_token)
