from typing import Protocol, Optional
from dataclasses import dataclass


class IdentityVerificationError(Exception):
    """Token missing, invalid, expired, or the provider could not be reached."""


@dataclass
class Identity:
    uid: str
    email: Optional[str] = None


class IdentityProvider(Protocol):
    def verify_token(self, token: str) -> Identity:
        ...
