"""
Friend recommendations from shared interests and mutual friends.

Candidates are collected in two independent passes into one accumulator keyed
by candidate id:

1. interest pass: every user sharing at least one interest tag, scored by the
   number of shared tags;
2. mutual-friend pass: every friend of a friend, scored by the number of
   paths through the user's friends (one per shared friend).

The user and the user's current friends are never candidates. The result is
sorted by common interests, then mutual friends, keeping discovery order for
ties.
"""

from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy import func

from core.retry import retry_reads, storage_errors
from models.models import Friendship, User, UserInterest
from services.user_service import require_user
from utils.logger import logger


@dataclass
class Recommendation:
    id: str
    username: str
    common_interests: int = 0
    mutual_friends: int = 0


class RecommendationService:
    """Read-only ranking over the user directory and the friend graph."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @retry_reads
    def recommend(self, user_id: str) -> List[Recommendation]:
        with storage_errors("recommend"), self.session_factory() as session:
            user = require_user(session, user_id)
            friend_ids = [
                row.friend_id
                for row in session.query(Friendship.friend_id)
                .filter(Friendship.user_id == user.id)
                .order_by(Friendship.created_at, Friendship.friend_id)
            ]
            excluded = {user.id, *friend_ids}

            candidates: Dict[str, Recommendation] = {}
            self._interest_pass(session, user, excluded, candidates)
            self._mutual_friend_pass(session, friend_ids, excluded, candidates)

        ranked = sorted(
            candidates.values(),
            key=lambda c: (-c.common_interests, -c.mutual_friends),
        )
        logger.info(f"Computed {len(ranked)} recommendations for user: {user_id}")
        return ranked

    def _interest_pass(self, session, user: User, excluded, candidates: Dict[str, Recommendation]) -> None:
        tags = user.interest_tags
        if not tags:
            return

        rows = (
            session.query(User.id, User.username, func.count(UserInterest.tag).label("shared"))
            .join(UserInterest, UserInterest.user_id == User.id)
            .filter(UserInterest.tag.in_(tags), User.id.notin_(sorted(excluded)))
            .group_by(User.id, User.username, User.created_at)
            .order_by(User.created_at, User.id)
            .all()
        )
        for row in rows:
            candidates[row.id] = Recommendation(id=row.id, username=row.username, common_interests=row.shared)

    def _mutual_friend_pass(self, session, friend_ids, excluded, candidates: Dict[str, Recommendation]) -> None:
        if not friend_ids:
            return

        # One row per (friend, friend-of-friend) path
        paths = (
            session.query(Friendship.friend_id, User.username)
            .join(User, User.id == Friendship.friend_id)
            .filter(Friendship.user_id.in_(friend_ids), Friendship.friend_id.notin_(sorted(excluded)))
            .order_by(Friendship.user_id, Friendship.created_at, Friendship.friend_id)
            .all()
        )
        for path in paths:
            candidate = candidates.get(path.friend_id)
            if candidate is None:
                candidate = candidates[path.friend_id] = Recommendation(id=path.friend_id, username=path.username)
            candidate.mutual_friends += 1
