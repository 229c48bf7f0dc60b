from datetime import datetime
from typing import Literal, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints
from typing_extensions import Annotated
from app.db.schema import UserRole


class UserRead(SQLModel):
    id: UUID
    email: str
    name: str
    role: UserRole
    ra: Optional[str] = None
    employee_register: Optional[str] = None
    phone: Optional[str] = None
    course: Optional[str] = None
    period: Optional[str] = None
    class_group: Optional[str] = None
    is_active: bool
    created_at: datetime


class UserSignin(SQLModel):
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Registered email address of the user.",
        max_length=255
    )
    password: str = Field(
        min_length=1,
        max_length=128,
        description="Plain text password."
    )


class StudentSignup(SQLModel):
    """
    DTO for the public registration page. Only students may sign up here;
    staff accounts are created by an administrator.
    """
    name: str = Field(min_length=2, max_length=120)
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        description="Unique email address for signin.",
        max_length=255
    )
    password: str = Field(
        min_length=6,
        max_length=128,
        description="Plain text password."
    )
    ra: str = Field(min_length=5, max_length=32,
                    description="Academic register.")
    phone: Optional[str] = Field(default=None, max_length=32)
    course: str = Field(min_length=1, max_length=120)
    period: str = Field(min_length=1, max_length=60)
    class_group: str = Field(min_length=1, max_length=30)


class UserCreate(SQLModel):
    """DTO for accounts created from the admin panel (any role)."""
    name: str = Field(min_length=2, max_length=120)
    email: Annotated[EmailStr, StringConstraints(to_lower=True)] = Field(
        max_length=255
    )
    password: str = Field(min_length=6, max_length=128)
    role: UserRole = Field(default=UserRole.STUDENT)
    register: str = Field(
        min_length=5, max_length=32,
        description="RA for students, employee register for staff."
    )
    phone: Optional[str] = Field(default=None, max_length=32)
    course: Optional[str] = Field(default=None, max_length=120)
    period: Optional[str] = Field(default=None, max_length=60)
    class_group: Optional[str] = Field(default=None, max_length=30)
    is_active: bool = True


class UserStatusUpdate(SQLModel):
    status: Literal["active", "inactive"]
