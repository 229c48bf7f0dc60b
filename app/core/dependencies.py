from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.db.core import get_session
from app.db.schema import User, UserRole
from app.core.permissions import ROLE_NAMES_PT
from app.services.user import UserService
from app.services.certificate import CertificateService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    """Creates a UserService instance using the active DB session."""
    return UserService(session)


def get_certificate_service(session: Session = Depends(get_session)) -> CertificateService:
    return CertificateService(session=session)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: UserService = Depends(get_user_service)
) -> User:
    """
    Validates the JWT token and retrieves the user.
    This is the gatekeeper for protected routes.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = service.verify_access_token(token)
    if not token_data:
        raise credentials_exception

    user = service.get_user_by_id(token_data.user_id)

    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")

    return user


def require_roles(*roles: UserRole):
    """
    Use: Depends(require_roles(UserRole.ADMIN))
    Blocks users without one of the allowed roles.
    """
    allowed = set(roles)

    def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied for profile '{ROLE_NAMES_PT.get(user.role, 'Unknown')}'.",
            )
        return user

    return _checker
