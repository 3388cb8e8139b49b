from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import BaseModel
from typing import List, Optional
from core.dependencies import get_auth_service
from core.errors import FriendGraphError, to_http_exception
from services.auth_service import AuthService
from utils.logger import logger

router = APIRouter()

# Pydantic models
class UserCreate(BaseModel):
    username: str
    password: str
    interests: Optional[List[str]] = []

class UserLogin(BaseModel):
    username: str
    password: str

class RegisterResponse(BaseModel):
    msg: str
    userId: str

class LoginResponse(BaseModel):
    token: str
    userId: str
    username: str

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Register a new user."""
    try:
        user_id = await auth_service.create_user(
            user_data.username,
            user_data.password,
            user_data.interests,
        )
        return RegisterResponse(msg="User registered successfully", userId=user_id)

    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error, please try again."
        )

@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: UserLogin,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Exchange a username and password for an access token."""
    try:
        result = await auth_service.authenticate_user(credentials.username, credentials.password)
        logger.info(f"User logged in: {credentials.username}")
        return LoginResponse(**result)

    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error, please try again."
        )
