import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth as fb_auth
from firebase_admin import credentials
from firebase_admin import exceptions as fb_exceptions

from ...application.ports.identity_provider import Identity, IdentityProvider, IdentityVerificationError

logger = logging.getLogger(__name__)

APP_NAME = "oralscan"


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(self, service_account: Optional[Dict[str, Any]] = None, app: Optional["firebase_admin.App"] = None) -> None:
        if app is None:
            if service_account is None:
                raise ValueError("Either a service account or a Firebase app is required")
            app = firebase_admin.initialize_app(
                credentials.Certificate(service_account),
                {"projectId": service_account.get("project_id")},
                name=APP_NAME,
            )
            logger.info("Firebase Admin initialized successfully")
        self.app = app

    def verify_token(self, token: str) -> Identity:
        try:
            claims = fb_auth.verify_id_token(token, app=self.app)
        except (fb_exceptions.FirebaseError, ValueError) as e:
            logger.warning(f"Firebase token verification failed: {type(e).__name__}")
            raise IdentityVerificationError("Invalid or expired token") from e

        uid = claims.get("uid") or claims.get("sub")
        if not uid:
            raise IdentityVerificationError("Token carries no user id")
        return Identity(uid=uid, email=claims.get("email"))

    def close(self) -> None:
        firebase_admin.delete_app(self.app)
