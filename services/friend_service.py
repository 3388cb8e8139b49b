import logging
from typing import Callable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from tenacity import RetryError, Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from core.config import settings
from core.errors import (
    AlreadyFriends,
    ConcurrentModification,
    DuplicateRequest,
    InvalidArgument,
    NoSuchRequest,
    NotFriends,
    StorageUnavailable,
)
from core.locks import UserLockRegistry
from core.retry import retry_reads, storage_errors
from models.models import FriendRequest, Friendship, User, utcnow
from services.notification_service import NotificationService
from services.user_service import UserSummary, require_user, validate_user_id
from utils.logger import logger


class FriendService:
    """Request/accept/reject/unfriend workflow over the friend graph.

    This is the only writer of friendships, pending requests and the
    notifications those transitions produce. Every transition touches two
    users and commits as one transaction that bumps both users' versions, so
    a competing writer fails with a stale version and the whole transition is
    re-evaluated against fresh state.
    """

    def __init__(self, session_factory, locks: Optional[UserLockRegistry] = None, max_attempts: Optional[int] = None):
        self.session_factory = session_factory
        self.locks = locks or UserLockRegistry()
        self.max_attempts = max_attempts or settings.WRITE_RETRY_ATTEMPTS

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def send_request(self, requester_id: str, target_id: str) -> None:
        """NONE -> REQUEST_PENDING(from=requester)."""

        def apply(session, requester: User, target: User):
            if self._are_friends(session, requester.id, target.id):
                raise AlreadyFriends("You are already friends.")
            if self._has_request(session, requester.id, target.id):
                raise DuplicateRequest("Friend request already sent.")

            session.add(FriendRequest(requester_id=requester.id, target_id=target.id, created_at=utcnow()))
            NotificationService.append(session, target.id, f"{requester.username} has sent you a friend request.")

        self._transition("send_request", requester_id, target_id, apply)
        logger.info(f"Friend request sent: {requester_id} -> {target_id}")

    def accept_request(self, accepter_id: str, requester_id: str) -> None:
        """REQUEST_PENDING(from=requester) -> FRIENDS."""

        def apply(session, accepter: User, requester: User):
            if not self._has_request(session, requester.id, accepter.id):
                raise NoSuchRequest("No friend request from this user.")

            # A crossed request in the other direction is settled as well
            self._delete_requests_between(session, accepter.id, requester.id)
            now = utcnow()
            session.add_all([
                Friendship(user_id=accepter.id, friend_id=requester.id, created_at=now),
                Friendship(user_id=requester.id, friend_id=accepter.id, created_at=now),
            ])
            NotificationService.append(session, requester.id, f"{accepter.username} has accepted your friend request.")

        self._transition("accept_request", accepter_id, requester_id, apply)
        logger.info(f"Friend request accepted: {requester_id} -> {accepter_id}")

    def reject_request(self, rejecter_id: str, requester_id: str) -> None:
        """REQUEST_PENDING(from=requester) -> NONE."""

        def apply(session, rejecter: User, requester: User):
            deleted = (
                session.query(FriendRequest)
                .filter(FriendRequest.requester_id == requester.id, FriendRequest.target_id == rejecter.id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NoSuchRequest("No friend request from this user.")

            NotificationService.append(session, requester.id, f"{rejecter.username} has rejected your friend request.")

        self._transition("reject_request", rejecter_id, requester_id, apply)
        logger.info(f"Friend request rejected: {requester_id} -> {rejecter_id}")

    def unfriend(self, initiator_id: str, other_id: str) -> None:
        """FRIENDS -> NONE."""

        def apply(session, initiator: User, other: User):
            deleted = (
                session.query(Friendship)
                .filter(self._pair_clause(Friendship.user_id, Friendship.friend_id, initiator.id, other.id))
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFriends("You are not friends.")

            NotificationService.append(session, other.id, f"{initiator.username} has unfriended you.")

        self._transition("unfriend", initiator_id, other_id, apply)
        logger.info(f"Unfriended: {initiator_id} -> {other_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @retry_reads
    def list_friends(self, user_id: str) -> List[UserSummary]:
        with storage_errors("list_friends"), self.session_factory() as session:
            user = require_user(session, user_id)
            rows = (
                session.query(User.id, User.username)
                .join(Friendship, Friendship.friend_id == User.id)
                .filter(Friendship.user_id == user.id)
                .order_by(Friendship.created_at, User.username)
                .all()
            )
            return [UserSummary(id=row.id, username=row.username) for row in rows]

    @retry_reads
    def list_friend_requests(self, user_id: str) -> List[UserSummary]:
        """Users with a pending request addressed to ``user_id``, oldest first."""
        with storage_errors("list_friend_requests"), self.session_factory() as session:
            user = require_user(session, user_id)
            rows = (
                session.query(User.id, User.username)
                .join(FriendRequest, FriendRequest.requester_id == User.id)
                .filter(FriendRequest.target_id == user.id)
                .order_by(FriendRequest.created_at, User.username)
                .all()
            )
            return [UserSummary(id=row.id, username=row.username) for row in rows]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, operation: str, actor_id: str, other_id: str, apply: Callable) -> None:
        actor_id = validate_user_id(actor_id)
        other_id = validate_user_id(other_id)
        if actor_id == other_id:
            raise InvalidArgument("User IDs must refer to two different users.")

        with self.locks.hold(actor_id, other_id):
            retrying = Retrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_random_exponential(multiplier=0.01, max=0.5),
                retry=retry_if_exception_type(ConcurrentModification),
                before_sleep=before_sleep_log(logger, logging.WARNING),
            )
            try:
                for attempt in retrying:
                    with attempt:
                        self._apply_once(operation, actor_id, other_id, apply)
            except RetryError as e:
                logger.error(f"{operation} gave up after {self.max_attempts} conflicting attempts")
                raise StorageUnavailable("Too much contention, please try again.") from e

    def _apply_once(self, operation: str, actor_id: str, other_id: str, apply: Callable) -> None:
        try:
            with storage_errors(operation), self.session_factory.begin() as session:
                actor = require_user(session, actor_id)
                other = require_user(session, other_id)
                apply(session, actor, other)
                # Both records change together or not at all
                for user in sorted((actor, other), key=lambda u: u.id):
                    user.version += 1
                    user.updated_at = utcnow()
        except (StaleDataError, IntegrityError) as e:
            logger.warning(f"Concurrent modification during {operation} ({actor_id}, {other_id}): {e}")
            raise ConcurrentModification("The users were modified concurrently.") from e

    @staticmethod
    def _pair_clause(left, right, first_id: str, second_id: str):
        return or_(
            and_(left == first_id, right == second_id),
            and_(left == second_id, right == first_id),
        )

    def _are_friends(self, session, first_id: str, second_id: str) -> bool:
        return session.query(Friendship.user_id).filter(
            self._pair_clause(Friendship.user_id, Friendship.friend_id, first_id, second_id)
        ).first() is not None

    @staticmethod
    def _has_request(session, requester_id: str, target_id: str) -> bool:
        return session.query(FriendRequest.requester_id).filter(
            FriendRequest.requester_id == requester_id,
            FriendRequest.target_id == target_id,
        ).first() is not None

    def _delete_requests_between(self, session, first_id: str, second_id: str) -> int:
        return (
            session.query(FriendRequest)
            .filter(self._pair_clause(FriendRequest.requester_id, FriendRequest.target_id, first_id, second_id))
            .delete(synchronize_session=False)
        )
