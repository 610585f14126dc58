from datetime import datetime, timezone
from typing import Optional

import pytest

from oralscan.application.ports.identity_provider import Identity, IdentityVerificationError
from oralscan.application.ports.user_repo import UserRepository, UserDto
from oralscan.application.services.auth_service import AuthService


class FakeUserRepo(UserRepository):
    def __init__(self):
        self.users = {}
        self.created = []
        self.email_updates = []

    def get_by_firebase_id(self, firebase_id: str) -> Optional[UserDto]:
        return self.users.get(firebase_id)

    def create(self, firebase_id: str, email: Optional[str]) -> UserDto:
        user = UserDto(id=len(self.users) + 1, firebase_id=firebase_id, email=email, created_at=datetime.now(timezone.utc))
        self.users[firebase_id] = user
        self.created.append(firebase_id)
        return user

    def update_email(self, firebase_id: str, email: Optional[str]) -> None:
        self.email_updates.append((firebase_id, email))
        self.users[firebase_id].email = email


class FakeIdentityProvider:
    def __init__(self, identities):
        self.identities = identities

    def verify_token(self, token: str) -> Identity:
        if token not in self.identities:
            raise IdentityVerificationError("Invalid or expired token")
        return self.identities[token]


def test_first_sign_in_creates_user():
    repo = FakeUserRepo()
    svc = AuthService(identity_provider=FakeIdentityProvider({"tok": Identity("fb-1", "a@example.com")}), user_repo=repo)

    assert svc.authenticate("tok") == "fb-1"
    assert repo.created == ["fb-1"]
    assert repo.users["fb-1"].email == "a@example.com"


def test_returning_user_is_not_recreated():
    repo = FakeUserRepo()
    svc = AuthService(identity_provider=FakeIdentityProvider({"tok": Identity("fb-1", "a@example.com")}), user_repo=repo)
    svc.authenticate("tok")
    svc.authenticate("tok")
    assert repo.created == ["fb-1"]
    assert repo.email_updates == []


def test_changed_email_is_updated():
    repo = FakeUserRepo()
    repo.create("fb-1", "old@example.com")
    svc = AuthService(identity_provider=FakeIdentityProvider({"tok": Identity("fb-1", "new@example.com")}), user_repo=repo)
    svc.authenticate("tok")
    assert repo.email_updates == [("fb-1", "new@example.com")]


def test_invalid_token_touches_no_repository():
    repo = FakeUserRepo()
    svc = AuthService(identity_provider=FakeIdentityProvider({}), user_repo=repo)
    with pytest.raises(IdentityVerificationError):
        svc.authenticate("bad")
    assert repo.created == []
