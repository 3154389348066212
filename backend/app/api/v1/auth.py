from fastapi import APIRouter, Depends

from app.core.auth import CurrentUser, get_current_user

router = APIRouter()


@router.get("/auth/me")
def auth_me(user: CurrentUser = Depends(get_current_user)):
    return {"user_id": user.id, "email": user.email}
