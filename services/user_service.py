import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from core.errors import AlreadyExists, InvalidArgument, NotFound
from core.retry import retry_reads, storage_errors
from models.models import User, UserInterest
from utils.logger import logger


@dataclass(frozen=True)
class UserSummary:
    id: str
    username: str


def validate_user_id(user_id: str) -> str:
    """Reject anything that is not a well-formed user id."""
    try:
        return str(uuid.UUID(str(user_id)))
    except (ValueError, TypeError, AttributeError):
        raise InvalidArgument("Invalid user ID")


def normalize_interests(interests: Optional[Iterable[str]]) -> List[str]:
    """Strip tags, drop blanks and duplicates, keep first-seen order."""
    tags = []
    for tag in interests or []:
        tag = str(tag).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def require_user(session, user_id: str) -> User:
    user = session.get(User, validate_user_id(user_id))
    if user is None:
        raise NotFound("User not found")
    return user


def _escape_like(fragment: str) -> str:
    return fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserService:
    """Directory of user identities; the only place users are created."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def create_user(self, username: str, hashed_password: str, interests: Optional[Iterable[str]] = None) -> User:
        """Create a user with empty relationship state."""
        username = (username or "").strip()
        if not username:
            raise InvalidArgument("Username is required")

        tags = normalize_interests(interests)
        try:
            with storage_errors("create_user"), self.session_factory.begin() as session:
                if session.query(User.id).filter(User.username == username).first():
                    raise AlreadyExists("User already exists")

                user = User(
                    id=str(uuid.uuid4()),
                    username=username,
                    hashed_password=hashed_password,
                    version=1,
                    interests=[UserInterest(tag=tag, position=i) for i, tag in enumerate(tags)],
                )
                session.add(user)
        except IntegrityError as e:
            # Lost a registration race on the unique username index
            raise AlreadyExists("User already exists") from e

        logger.info(f"Created user: {username} ({user.id})")
        return user

    @retry_reads
    def find_by_id(self, user_id: str) -> Optional[User]:
        user_id = validate_user_id(user_id)
        with storage_errors("find_by_id"), self.session_factory() as session:
            return (
                session.query(User)
                .options(selectinload(User.interests))
                .filter(User.id == user_id)
                .first()
            )

    @retry_reads
    def find_by_username(self, username: str) -> Optional[User]:
        with storage_errors("find_by_username"), self.session_factory() as session:
            return (
                session.query(User)
                .options(selectinload(User.interests))
                .filter(User.username == username)
                .first()
            )

    @retry_reads
    def search_by_username(self, fragment: str) -> List[UserSummary]:
        """Case-insensitive substring match on usernames."""
        pattern = f"%{_escape_like(fragment or '')}%"
        with storage_errors("search_by_username"), self.session_factory() as session:
            rows = (
                session.query(User.id, User.username)
                .filter(User.username.ilike(pattern, escape="\\"))
                .order_by(User.username)
                .all()
            )
            return [UserSummary(id=row.id, username=row.username) for row in rows]

    @retry_reads
    def list_excluding(self, user_id: str) -> List[UserSummary]:
        """Everyone except the given user."""
        with storage_errors("list_excluding"), self.session_factory() as session:
            user = require_user(session, user_id)
            rows = (
                session.query(User.id, User.username)
                .filter(User.id != user.id)
                .order_by(User.username)
                .all()
            )
            return [UserSummary(id=row.id, username=row.username) for row in rows]
