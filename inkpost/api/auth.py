from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from inkpost.api.deps import get_auth_service, get_bearer_token
from inkpost.core.exceptions.exceptions import AuthenticationError, ExternalAPIError
from inkpost.schemas.content import LoginOut, LoginRequest
from inkpost.services.auth_service import AuthService

router = APIRouter(tags=["Auth"])


@router.post("/login", response_model=LoginOut)
async def login(
    payload: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> LoginOut:
    try:
        session = await auth.login(payload.email, payload.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    except ExternalAPIError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=auth.error)
    return LoginOut(access_token=session["access_token"], user=auth.user or {})


@router.post("/logout")
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    try:
        await auth.logout(token)
    except ExternalAPIError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Logout failed, please try again")
    return {"status": "signed_out"}
