"""FastAPI dependencies wiring request handlers to their collaborators.

Process-wide collaborators (settings, inference client, identity provider) are built
in the application lifespan and read from ``app.state``. Repositories are bound to a
request-scoped session. Tests swap any of these through ``app.dependency_overrides``.
"""
import logging
from typing import Optional
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from .core.config import Settings, get_settings
from .database import get_session
from .application.ports.ai_provider import AIProvider
from .application.ports.analysis_repo import AnalysisRepository
from .application.ports.identity_provider import IdentityProvider, IdentityVerificationError
from .application.ports.user_repo import UserRepository
from .application.services.analysis_service import AnalysisService
from .application.services.auth_service import AuthService
from .application.services.image_intake import ImageIntake
from .infrastructure.persistence.sqlalchemy.repositories.analysis_repository_sql import SqlAnalysisRepository
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

UNAUTHORIZED = "Unauthorized"


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_ai_provider(request: Request) -> AIProvider:
    return request.app.state.ai_provider


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_analysis_repo(session: Session = Depends(get_session)) -> AnalysisRepository:
    return SqlAnalysisRepository(session)


def get_user_repo(session: Session = Depends(get_session)) -> UserRepository:
    return SqlUserRepository(session)


def get_image_intake(settings: Settings = Depends(get_app_settings)) -> ImageIntake:
    return ImageIntake(max_size=settings.MAX_FILE_SIZE, allowed_types=settings.ALLOWED_IMAGE_TYPES)


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


def require_bearer_token(token: Optional[str] = Depends(get_bearer_token)) -> str:
    if not token:
        logger.warning("Request without bearer token rejected")
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    return token


def get_auth_service(
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    user_repo: UserRepository = Depends(get_user_repo),
) -> AuthService:
    return AuthService(identity_provider=identity_provider, user_repo=user_repo)


def _authenticate(auth_service: AuthService, token: str, session: Session) -> str:
    try:
        return auth_service.authenticate(token)
    except IdentityVerificationError:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)
    finally:
        # Hands the pooled connection back before the handler awaits inference
        session.close()


# The token parameter comes first so a missing token is rejected before any
# repository or session is built.
def get_current_user(
    token: str = Depends(require_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_session),
) -> str:
    return _authenticate(auth_service, token, session)


def get_optional_user(
    token: Optional[str] = Depends(get_bearer_token),
    settings: Settings = Depends(get_app_settings),
    auth_service: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_session),
) -> Optional[str]:
    if token is None:
        if settings.REQUIRE_AUTH_FOR_ANALYSIS:
            logger.warning("Analysis request without bearer token rejected")
            raise HTTPException(status_code=401, detail=UNAUTHORIZED)
        return None
    # A token that is present must be valid even when anonymous submissions are allowed
    return _authenticate(auth_service, token, session)


def get_analysis_service(
    settings: Settings = Depends(get_app_settings),
    analysis_repo: AnalysisRepository = Depends(get_analysis_repo),
    ai_provider: AIProvider = Depends(get_ai_provider),
    intake: ImageIntake = Depends(get_image_intake),
) -> AnalysisService:
    return AnalysisService(
        analysis_repo=analysis_repo,
        ai_provider=ai_provider,
        intake=intake,
        inline_image_references=settings.INLINE_IMAGE_REFERENCES,
        disconnect_poll_seconds=settings.DISCONNECT_POLL_SECONDS,
    )
