"""Login link redemption and session endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from core.auth import security
from schemas.auth import SessionResponse, UserResponse
from schemas.common import ApiResponse
from services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/login", response_model=ApiResponse[SessionResponse])
async def login(
    token: str = Query(..., min_length=1, description="Login token from the bot's link"),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[SessionResponse]:
    """Redeem a one-time login token for a dashboard session."""
    user = await auth_service.verify_login_token(db, token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired login token")
    session_token, expires_at = await auth_service.create_session(db, user.id)
    return ApiResponse(data=SessionResponse(
        session_token=session_token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user),
    ))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """End the session named by the bearer token. Logging out twice is not an error."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    await auth_service.destroy_session(db, credentials.credentials)
    return ApiResponse(data=None)
