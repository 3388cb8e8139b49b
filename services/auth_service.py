import asyncio
from typing import Iterable, Optional

from core.errors import InvalidArgument, InvalidCredentials
from core.security import create_access_token, get_password_hash, verify_password
from services.user_service import UserService
from utils.logger import logger

class AuthService:
    """Authentication service for user management."""

    def __init__(self, user_service: UserService, bcrypt_rounds: Optional[int] = None):
        self.user_service = user_service
        self.bcrypt_rounds = bcrypt_rounds

    async def create_user(self, username: str, password: str, interests: Optional[Iterable[str]] = None) -> str:
        """Register a new user and return its id."""
        if not username or not username.strip() or not password:
            raise InvalidArgument("Username and password are required")

        # Hashing and storage calls block, keep them off the event loop
        hashed_password = await asyncio.to_thread(get_password_hash, password, self.bcrypt_rounds)
        user = await asyncio.to_thread(self.user_service.create_user, username, hashed_password, interests)
        logger.info(f"Registered user: {user.username}")
        return user.id

    async def authenticate_user(self, username: str, password: str) -> dict:
        """Verify credentials and issue an access token."""
        user = await asyncio.to_thread(self.user_service.find_by_username, username)
        if not user:
            raise InvalidCredentials("Invalid credentials")

        if not await asyncio.to_thread(verify_password, password, user.hashed_password):
            logger.warning(f"Failed login for user: {username}")
            raise InvalidCredentials("Invalid credentials")

        return {
            "token": create_access_token(user.id),
            "userId": user.id,
            "username": user.username,
        }
