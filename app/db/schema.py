from typing import Optional, List, Dict, Any
from datetime import datetime, date, timezone
import uuid
from sqlmodel import SQLModel, Field, Relationship, JSON
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    STUDENT = "student"          # Submits certificates
    PEDAGOGY = "pedagogy"        # First-stage reviewer
    SECRETARIAT = "secretariat"  # Second-stage reviewer
    ADMIN = "admin"              # Manages accounts, may perform any review


STAFF_ROLES = (UserRole.PEDAGOGY, UserRole.SECRETARIAT, UserRole.ADMIN)


class CertificateStatus(str, Enum):
    PENDING = "pending"
    APPROVED_BY_PEDAGOGY = "approved_by_pedagogy"
    APPROVED_BY_SECRETARIAT = "approved_by_secretariat"
    APPROVED = "approved"      # Terminal: both approvals present
    REJECTED = "rejected"      # Terminal and exclusive


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class TimestampMixin(SQLModel):
    """
    Provides standard audit timestamps for database records.
    Every entity inheriting from this mixin tracks when it was originally
    created and when it was last modified.
    """
    created_at: datetime = Field(
        default_factory=utc_now,
        description="The exact UTC timestamp when this record was first persisted. Example: '2025-11-03 14:30:00'"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="The exact UTC timestamp when this record was last modified. Example: '2025-11-04 09:15:00'"
    )


class User(TimestampMixin, SQLModel, table=True):
    """
    A person with access to the platform.
    Students register themselves through the public signup and carry an
    academic register (RA) plus course details. Staff accounts (pedagogy,
    secretariat, admin) are created by an administrator and carry an
    employee register instead.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for this user."
    )
    email: str = Field(
        unique=True,
        index=True,
        description="Login email, stored lowercase. Example: 'maria@escola.edu.br'"
    )
    hashed_password: str = Field(
        description="Argon2 hash of the user's password. Never returned by the API."
    )
    name: str = Field(
        description="Full display name. Example: 'Maria Souza'"
    )
    role: UserRole = Field(
        default=UserRole.STUDENT,
        index=True,
        description="Access profile of the account. Example: 'student'"
    )
    ra: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        description="Academic register of a student. Example: '2023001234'"
    )
    employee_register: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        description="Employee register of a staff member. Example: 'RE-0042'"
    )
    phone: Optional[str] = Field(
        default=None,
        description="Contact phone number. Example: '+55 11 99999-0000'"
    )
    course: Optional[str] = Field(
        default=None,
        description="Course a student is enrolled in. Example: 'Técnico em Informática'"
    )
    period: Optional[str] = Field(
        default=None,
        description="Study period of a student. Example: 'Noturno'"
    )
    class_group: Optional[str] = Field(
        default=None,
        description="Class (turma) of a student. Example: '3A'"
    )
    is_active: bool = Field(
        default=True,
        description="Inactive accounts cannot sign in or call protected routes."
    )

    certificates: List["Certificate"] = Relationship(
        back_populates="owner",
        sa_relationship_kwargs={"foreign_keys": "Certificate.owner_id"}
    )


class Certificate(TimestampMixin, SQLModel, table=True):
    """
    A medical absence certificate (atestado) submitted by a student.

    The three review slots (pedagogy approval, secretariat approval and
    rejection) are stored as nullable column groups. Each slot is written at
    most once. `status` is denormalized for filtering and is rewritten from
    the slots on every review; `version` guards the read-modify-write of a
    review against concurrent reviewers.
    """
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        description="The unique identifier for this certificate."
    )
    owner_id: uuid.UUID = Field(
        foreign_key="user.id",
        index=True,
        description="The student who submitted the certificate."
    )

    start_date: date = Field(
        description="First day of absence. Example: '2025-11-03'"
    )
    end_date: date = Field(
        description="Last day of absence (inclusive). Example: '2025-11-05'"
    )
    days_off: int = Field(
        description="Length of the absence in days, inclusive of both ends. Example: 3"
    )
    reason: str = Field(
        default="",
        description="Free text reason supplied by the student, markup stripped."
    )
    image_url: str = Field(
        default="",
        description="Public URL of the uploaded proof image."
    )
    image_path: str = Field(
        default="",
        description="Storage path of the uploaded proof image."
    )

    status: CertificateStatus = Field(
        default=CertificateStatus.PENDING,
        index=True,
        description="Derived review status. Example: 'approved_by_pedagogy'"
    )

    pedagogy_approved_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="user.id")
    pedagogy_approved_at: Optional[datetime] = Field(default=None)

    secretariat_approved_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="user.id")
    secretariat_approved_at: Optional[datetime] = Field(default=None)

    rejected_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="user.id")
    rejected_at: Optional[datetime] = Field(default=None)
    rejection_reason: Optional[str] = Field(default=None)

    admin_note: str = Field(
        default="",
        description="Review note: generated approval summary, optionally followed by the reviewer's comment."
    )

    version: int = Field(
        default=1,
        description="Incremented on every review write; used for conditional updates."
    )

    owner: Optional[User] = Relationship(
        back_populates="certificates",
        sa_relationship_kwargs={"foreign_keys": "Certificate.owner_id"}
    )


class AuditLog(SQLModel, table=True):
    """
    Immutable record of an administrative change to a user account.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    actor_user_id: uuid.UUID = Field(index=True)
    entity_type: str = Field(
        description="Kind of entity changed. Example: 'user'")
    entity_id: uuid.UUID = Field(index=True)
    action: AuditAction
    changes: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    ip_address: Optional[str] = Field(default=None)
    timestamp: datetime = Field(default_factory=utc_now, index=True)
