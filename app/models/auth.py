from typing import Literal
from uuid import UUID
from sqlmodel import SQLModel, Field


class Token(SQLModel):
    """Signin response: a short-lived access token and the refresh token that renews it."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(
        description="Access token lifetime in seconds.")


class TokenAccess(SQLModel):
    access_token: str
    token_type: str = "bearer"


class TokenRefresh(SQLModel):
    refresh_token: str = Field(min_length=1)


class TokenData(SQLModel):
    """Verified claims of a decoded JWT."""
    user_id: UUID
    token_type: Literal["access", "refresh"]
