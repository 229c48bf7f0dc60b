from typing import List, Optional
import uuid
from datetime import timedelta

import jwt
from loguru import logger
from sqlmodel import Session, select, or_
from fastapi import HTTPException, status

from app.core.config import settings
from app.db.schema import User, UserRole, utc_now
from app.models.auth import Token, TokenData
from app.models.user import StudentSignup, UserCreate
from app.utils.sanitize import sanitize_text, sanitize_optional
from .password import get_password_hash, verify_password


class UserService:
    ALGORITHM = "HS256"

    def __init__(self, session: Session):
        self.session = session

    def _create_jwt(self, subject: str, expires_delta: timedelta, type: str) -> str:
        """Helper to sign JWTs with specific types."""
        to_encode = {
            "sub": str(subject),
            "exp": utc_now() + expires_delta,
            "type": type
        }
        return jwt.encode(to_encode, settings.secret_key, algorithm=self.ALGORITHM)

    def _decode_jwt(self, token: str, expected_type: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key,
                                 algorithms=[self.ALGORITHM])
            user_id = payload.get("sub")
            token_type = payload.get("type")

            if not user_id or token_type != expected_type:
                return None

            return TokenData(user_id=uuid.UUID(user_id), token_type=token_type)
        except (jwt.PyJWTError, ValueError):
            return None

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        statement = select(User).where(User.id == user_id)
        return self.session.exec(statement).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email.lower())
        return self.session.exec(statement).first()

    def _ensure_unique(self, email: str, register: str) -> None:
        """
        Email and register (RA or employee register) must be unique across
        all accounts. Raises ValueError naming the clashing field.
        """
        if self.get_user_by_email(email):
            raise ValueError("A user with this email already exists.")

        clash = self.session.exec(
            select(User).where(
                or_(User.ra == register, User.employee_register == register))
        ).first()
        if clash:
            raise ValueError(
                "This RA/register is already used by another user.")

    def _persist(self, user: User) -> User:
        try:
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Registration failed: {str(e)}")
            raise e

        logger.info(f"Registration successful for {user.email} ({user.role.value})")
        return user

    def create_student(self, data: StudentSignup) -> User:
        """
        Public signup. Always creates a student account.
        """
        ra = sanitize_text(data.ra)
        self._ensure_unique(data.email, ra)

        user = User(
            email=data.email,
            hashed_password=get_password_hash(data.password),
            name=sanitize_text(data.name),
            role=UserRole.STUDENT,
            ra=ra,
            phone=sanitize_optional(data.phone),
            course=sanitize_text(data.course),
            period=sanitize_text(data.period),
            class_group=sanitize_text(data.class_group),
            is_active=True
        )
        return self._persist(user)

    def create_user(self, data: UserCreate) -> User:
        """
        Admin panel account creation. Students keep their register as RA,
        staff as employee register.
        """
        register = sanitize_text(data.register)
        self._ensure_unique(data.email, register)

        is_student = data.role == UserRole.STUDENT
        user = User(
            email=data.email,
            hashed_password=get_password_hash(data.password),
            name=sanitize_text(data.name),
            role=data.role,
            ra=register if is_student else None,
            employee_register=None if is_student else register,
            phone=sanitize_optional(data.phone),
            course=sanitize_optional(data.course),
            period=sanitize_optional(data.period),
            class_group=sanitize_optional(data.class_group),
            is_active=data.is_active
        )
        return self._persist(user)

    def list_users(self, role: Optional[UserRole] = None, is_active: Optional[bool] = None) -> List[User]:
        statement = select(User)
        if role is not None:
            statement = statement.where(User.role == role)
        if is_active is not None:
            statement = statement.where(User.is_active == is_active)
        statement = statement.order_by(User.name.asc())
        return list(self.session.exec(statement).all())

    def set_active(self, actor: User, user_id: uuid.UUID, is_active: bool) -> User:
        """Activates or deactivates an account. Admins cannot lock themselves out."""
        user = self.get_user_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

        if user.id == actor.id and not is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account."
            )

        user.is_active = is_active
        user.updated_at = utc_now()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        logger.info(
            f"User {user.id} set to {'active' if is_active else 'inactive'} by {actor.id}")
        return user

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Verify email and password hash."""
        user = self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def generate_access_token(self, user: User) -> str:
        return self._create_jwt(
            subject=user.id,
            expires_delta=timedelta(
                minutes=settings.access_token_expire_minutes),
            type="access"
        )

    def generate_refresh_token(self, user: User) -> str:
        return self._create_jwt(
            subject=user.id,
            expires_delta=timedelta(
                minutes=settings.refresh_token_expire_minutes),
            type="refresh"
        )

    def generate_tokens(self, user: User) -> Token:
        return Token(
            access_token=self.generate_access_token(user),
            refresh_token=self.generate_refresh_token(user),
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60
        )

    def verify_access_token(self, token: str) -> Optional[TokenData]:
        return self._decode_jwt(token, "access")

    def verify_refresh_token(self, token: str) -> Optional[TokenData]:
        return self._decode_jwt(token, "refresh")

    def validate_user(self, user_id: uuid.UUID) -> Optional[User]:
        """Retrieves user and checks is_active flag."""
        user = self.get_user_by_id(user_id)
        if not user or not user.is_active:
            return None
        return user

    def refresh_session(self, refresh_token: str) -> str:
        """
        Exchange a valid refresh token for a new access token.
        Strictly validates the user state before issuing.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        # 1. Verify Token Signature & Type
        token_data = self.verify_refresh_token(refresh_token)
        if not token_data:
            raise credentials_exception

        # 2. Verify User Exists & Is Active
        user = self.validate_user(token_data.user_id)
        if not user:
            raise credentials_exception

        # 3. Issue New Access Token
        return self.generate_access_token(user)
