from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from identity_service.database import Database
from identity_service.errors import NotFound
from identity_service.models.user import UserEntry
from identity_service.schemas.users import UserResponse

LOGGER = logging.getLogger(__name__)

DEFAULT_NAME_LENGTH = 8


def default_name_for_email(email: str) -> str:
    return email[:DEFAULT_NAME_LENGTH]


class UserStore:
    def __init__(self, database: Database) -> None:
        self._database = database

    def find_by_email(self, email: str) -> UserResponse | None:
        with self._database.session_scope() as session:
            entry = session.execute(
                select(UserEntry).where(UserEntry.email == email)
            ).scalar_one_or_none()
            if entry is None:
                return None
            return self._to_response(entry)

    def ensure_user_for_email(self, email: str) -> tuple[UserResponse, bool]:
        existing = self.find_by_email(email)
        if existing is not None:
            return existing, True

        now = datetime.now(timezone.utc)
        try:
            with self._database.session_scope() as session:
                entry = UserEntry(
                    name=default_name_for_email(email),
                    email=email,
                    created_at=now,
                    updated_at=now,
                )
                session.add(entry)
                session.flush()
                created = self._to_response(entry)
        except IntegrityError:
            # Another request created the same email first.
            existing = self.find_by_email(email)
            if existing is None:
                raise
            return existing, True
        LOGGER.info("Created user %s for %s", created.id, email)
        return created, False

    def get_user(self, user_id: int) -> UserResponse | None:
        with self._database.session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                return None
            return self._to_response(entry)

    def list_users(self) -> list[UserResponse]:
        with self._database.session_scope() as session:
            result = session.execute(select(UserEntry).order_by(UserEntry.id))
            return [self._to_response(entry) for entry in result.scalars().all()]

    def update_name(self, user_id: int, name: str) -> UserResponse:
        with self._database.session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                raise NotFound()
            entry.name = name
            entry.updated_at = datetime.now(timezone.utc)
            session.flush()
            return self._to_response(entry)

    def _to_response(self, entry: UserEntry) -> UserResponse:
        return UserResponse(
            id=entry.id,
            name=entry.name,
            email=entry.email,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )
