import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto

logger = logging.getLogger(__name__)


class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            firebase_id=user.firebase_id,
            email=user.email,
            created_at=user.created_at,
        )

    def _get(self, firebase_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.firebase_id == firebase_id)).first()

    def get_by_firebase_id(self, firebase_id: str) -> Optional[UserDto]:
        user = self._get(firebase_id)
        return self._to_dto(user) if user else None

    def create(self, firebase_id: str, email: Optional[str]) -> UserDto:
        user = User(firebase_id=firebase_id, email=email)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent first sign-in inserted the same identity
            self.session.rollback()
            existing = self._get(firebase_id)
            if existing is None:
                raise
            return self._to_dto(existing)
        self.session.refresh(user)
        return self._to_dto(user)

    def update_email(self, firebase_id: str, email: Optional[str]) -> None:
        user = self._get(firebase_id)
        if not user:
            return
        user.email = email
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # Another account already owns that address; keep the stored one
            self.session.rollback()
            logger.warning(f"Email for user {firebase_id} not updated: address already in use")
