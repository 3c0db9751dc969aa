"""Authentication router: the session itself is issued by the external provider."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from internlink.core.config import settings
from internlink.core.security import get_current_user
from internlink.models.user import User
from internlink.utils.serializers import serialize_user

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return {"user": serialize_user(current_user)}


@router.post("/logout")
async def logout():
    response = JSONResponse(content={"message": "Logged out successfully"})
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        secure=settings.IS_PRODUCTION,
        samesite="none" if settings.IS_PRODUCTION else "lax",
    )
    return response
