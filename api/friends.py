from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import BaseModel, Field
from typing import List
from core.dependencies import (
    get_friend_service,
    get_notification_service,
    get_recommendation_service,
    get_user_service,
    verify_access_token,
)
from core.errors import FriendGraphError, to_http_exception
from services.friend_service import FriendService
from services.notification_service import NotificationService
from services.recommendation_service import RecommendationService
from services.user_service import UserService
from utils.logger import logger
import datetime

# Every route requires a valid bearer token
router = APIRouter(dependencies=[Depends(verify_access_token)])

SERVER_ERROR = "Server error, please try again."

class FriendAction(BaseModel):
    user_id: str = Field(alias="userId")
    friend_id: str = Field(alias="friendId")

    class Config:
        populate_by_name = True

class UserResponse(BaseModel):
    id: str
    username: str

    class Config:
        from_attributes = True

class NotificationResponse(BaseModel):
    message: str
    timestamp: datetime.datetime

    class Config:
        from_attributes = True

class RecommendationResponse(BaseModel):
    id: str
    username: str
    common_interests: int = Field(alias="commonInterests")
    mutual_friends: int = Field(alias="mutualFriends")

    class Config:
        from_attributes = True
        populate_by_name = True

class MessageResponse(BaseModel):
    msg: str

class FriendsResponse(BaseModel):
    friends: List[UserResponse]

class FriendRequestsResponse(BaseModel):
    friendRequests: List[UserResponse]

class NotificationsResponse(BaseModel):
    notifications: List[NotificationResponse]

class RecommendationsResponse(BaseModel):
    recommendations: List[RecommendationResponse]

class UsersResponse(BaseModel):
    users: List[UserResponse]


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=SERVER_ERROR
    )

@router.get("/search", response_model=List[UserResponse])
def search_users(
    username: str = "",
    user_service: UserService = Depends(get_user_service)
):
    """Search for users by part of their username."""
    try:
        return user_service.search_by_username(username)
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("during user search", e)

@router.post("/request", response_model=MessageResponse)
def send_friend_request(
    action: FriendAction,
    friend_service: FriendService = Depends(get_friend_service)
):
    """Send a friend request."""
    try:
        friend_service.send_request(action.user_id, action.friend_id)
        return MessageResponse(msg="Friend request sent")
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("during friend request", e)

@router.post("/accept", response_model=MessageResponse)
def accept_friend_request(
    action: FriendAction,
    friend_service: FriendService = Depends(get_friend_service)
):
    """Accept a friend request sent by ``friendId`` to ``userId``."""
    try:
        friend_service.accept_request(action.user_id, action.friend_id)
        return MessageResponse(msg="Friend request accepted.")
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("accepting friend request", e)

@router.post("/reject", response_model=MessageResponse)
def reject_friend_request(
    action: FriendAction,
    friend_service: FriendService = Depends(get_friend_service)
):
    """Reject a friend request sent by ``friendId`` to ``userId``."""
    try:
        friend_service.reject_request(action.user_id, action.friend_id)
        return MessageResponse(msg="Friend request rejected.")
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("rejecting friend request", e)

@router.post("/unfriend", response_model=MessageResponse)
def unfriend(
    action: FriendAction,
    friend_service: FriendService = Depends(get_friend_service)
):
    """Unfriend a user."""
    try:
        friend_service.unfriend(action.user_id, action.friend_id)
        return MessageResponse(msg="Unfriended successfully.")
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("unfriending user", e)

@router.get("/{user_id}/friend-requests", response_model=FriendRequestsResponse)
def get_friend_requests(
    user_id: str,
    friend_service: FriendService = Depends(get_friend_service)
):
    """Get pending friend requests addressed to a user."""
    try:
        return FriendRequestsResponse(friendRequests=friend_service.list_friend_requests(user_id))
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("fetching friend requests", e)

@router.get("/{user_id}/friends", response_model=FriendsResponse)
def get_friends(
    user_id: str,
    friend_service: FriendService = Depends(get_friend_service)
):
    """Get the user's friends."""
    try:
        return FriendsResponse(friends=friend_service.list_friends(user_id))
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("fetching friends", e)

@router.get("/{user_id}/notifications", response_model=NotificationsResponse)
def get_notifications(
    user_id: str,
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Get notifications for a user, oldest first."""
    try:
        return NotificationsResponse(notifications=notification_service.list_notifications(user_id))
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("fetching notifications", e)

@router.get("/{user_id}/recommendations", response_model=RecommendationsResponse)
def get_recommendations(
    user_id: str,
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
):
    """Get friend recommendations based on common interests and mutual friends."""
    try:
        return RecommendationsResponse(recommendations=recommendation_service.recommend(user_id))
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("fetching friend recommendations", e)

@router.get("/{user_id}/users", response_model=UsersResponse)
def get_users(
    user_id: str,
    user_service: UserService = Depends(get_user_service)
):
    """Get all users excluding the given one."""
    try:
        return UsersResponse(users=user_service.list_excluding(user_id))
    except FriendGraphError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _server_error("fetching users", e)
