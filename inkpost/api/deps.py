from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from inkpost.clients.auth_client import AuthClient
from inkpost.clients.record_store_client import RecordStoreClient
from inkpost.config.settings import settings
from inkpost.core.exceptions.exceptions import ExternalAPIError
from inkpost.services.auth_service import AuthService
from inkpost.services.comments_service import CommentSessionRegistry, CommentThread
from inkpost.services.content_service import ContentService
from inkpost.utils.log import app_logger

# process-wide clients, created on first use
_store: Optional[RecordStoreClient] = None
_auth_client: Optional[AuthClient] = None
_comment_sessions: Optional[CommentSessionRegistry] = None


def get_store() -> RecordStoreClient:
    global _store
    if _store is None:
        _store = RecordStoreClient()
    return _store


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthClient()
    return _auth_client


def close_clients() -> None:
    global _store, _auth_client
    for client in (_store, _auth_client):
        if client is not None:
            client.close()
    _store = None
    _auth_client = None


def get_content_service(store: RecordStoreClient = Depends(get_store)) -> ContentService:
    return ContentService(store=store)


def get_auth_service(client: AuthClient = Depends(get_auth_client)) -> AuthService:
    return AuthService(client=client)


def get_comment_sessions() -> CommentSessionRegistry:
    global _comment_sessions
    if _comment_sessions is None:
        _comment_sessions = CommentSessionRegistry(lambda: CommentThread(get_store()))
    return _comment_sessions


def get_session_id(request: Request, x_session_id: Optional[str] = Header(default=None)) -> str:
    """comment throttle scope: the client's session header, else its address"""
    if x_session_id and x_session_id.strip():
        return x_session_id.strip()
    if request.client is not None:
        return request.client.host
    return "anonymous"


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_optional_user(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    try:
        return await auth.current_user(token)
    except ExternalAPIError as e:
        app_logger.warning("auth.lookup_failed", error=e.message)
        return None


@dataclass
class AuthorContext:
    user: Dict[str, Any]
    access_token: str


async def require_author(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> AuthorContext:
    """Authoring endpoints: admin features enabled and a signed-in user."""
    if not settings.ADMIN_ENABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Authoring is disabled")
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please log in first")
    try:
        user = await auth.current_user(token)
    except ExternalAPIError as e:
        app_logger.error("auth.lookup_failed", error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Login service unavailable")
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please log in first")
    return AuthorContext(user=user, access_token=token)
