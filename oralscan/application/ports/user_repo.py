from typing import Protocol, Optional
from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserDto:
    id: int
    firebase_id: str
    email: Optional[str]
    created_at: datetime


class UserRepository(Protocol):
    def get_by_firebase_id(self, firebase_id: str) -> Optional[UserDto]:
        ...

    def create(self, firebase_id: str, email: Optional[str]) -> UserDto:
        ...

    def update_email(self, firebase_id: str, email: Optional[str]) -> None:
        ...
