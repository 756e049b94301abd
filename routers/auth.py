from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from typing import Optional
import logging

from schemas import UserLogin, UserSignup, AuthResponse, MessageResponse, User
from storage import Storage
from dependencies import (
    check_admin_ip, end_session, get_current_user, get_password_hash,
    get_storage, start_session, verify_password
)

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_admin_ip)]
)
async def signup(user: UserSignup, storage: Storage = Depends(get_storage)):
    if storage.get_user_by_username(user.username):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists"
        )

    created = storage.create_user(
        username=user.username,
        password_hash=get_password_hash(user.password),
        is_admin=user.is_admin
    )
    logger.info(f"Created user {created.username} (admin={created.is_admin})")
    return {"user": created}

@router.post("/login", response_model=AuthResponse)
async def login(
    user_credentials: UserLogin,
    response: Response,
    storage: Storage = Depends(get_storage)
):
    user = storage.get_user_credentials(user_credentials.username)
    if not user or not verify_password(user_credentials.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    public_user = User.model_validate(user.model_dump(exclude={"password"}))
    start_session(response, storage, public_user)
    return {"user": public_user}

@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response, storage: Storage = Depends(get_storage)):
    end_session(request, response, storage)
    return {"message": "Logged out successfully"}

@router.get("/user", response_model=AuthResponse)
async def read_current_user(current_user: Optional[User] = Depends(get_current_user)):
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return {"user": current_user}
