import logging
from dataclasses import dataclass

from ..ports.identity_provider import IdentityProvider
from ..ports.user_repo import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class AuthService:
    identity_provider: IdentityProvider
    user_repo: UserRepository

    def authenticate(self, token: str) -> str:
        """Resolve a bearer token to the caller's external uid.

        Raises IdentityVerificationError when the provider rejects the token. The
        local user row is created on first successful sign-in.
        """
        identity = self.identity_provider.verify_token(token)

        user = self.user_repo.get_by_firebase_id(identity.uid)
        if user is None:
            self.user_repo.create(identity.uid, identity.email)
            logger.info(f"Created user record for {identity.uid}")
        elif identity.email and identity.email != user.email:
            self.user_repo.update_email(identity.uid, identity.email)

        return identity.uid
