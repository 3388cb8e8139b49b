from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.errors import AuthError
from core.security import decode_access_token
from services.auth_service import AuthService
from services.friend_service import FriendService
from services.notification_service import NotificationService
from services.recommendation_service import RecommendationService
from services.user_service import UserService

# Global service instances (will be set by main.py)
user_service: Optional[UserService] = None
auth_service: Optional[AuthService] = None
friend_service: Optional[FriendService] = None
notification_service: Optional[NotificationService] = None
recommendation_service: Optional[RecommendationService] = None

bearer_scheme = HTTPBearer(auto_error=False)


def build_services(session_factory, bcrypt_rounds: Optional[int] = None) -> dict:
    """Create one instance of every service over a session factory."""
    users = UserService(session_factory)
    return {
        "users": users,
        "auth": AuthService(users, bcrypt_rounds=bcrypt_rounds),
        "friends": FriendService(session_factory),
        "notifications": NotificationService(session_factory),
        "recommendations": RecommendationService(session_factory),
    }


def set_services(users, auth, friends, notifications, recommendations):
    """Set the global service instances."""
    global user_service, auth_service, friend_service, notification_service, recommendation_service
    user_service = users
    auth_service = auth
    friend_service = friends
    notification_service = notifications
    recommendation_service = recommendations


def get_user_service() -> UserService:
    return user_service

def get_auth_service() -> AuthService:
    return auth_service

def get_friend_service() -> FriendService:
    return friend_service

def get_notification_service() -> NotificationService:
    return notification_service

def get_recommendation_service() -> RecommendationService:
    return recommendation_service


def verify_access_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    """Resolve the caller's identity from a bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return {"uid": decode_access_token(credentials.credentials)}
    except AuthError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
