from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
from sqlmodel import SQLModel, Field

from app.db.schema import CertificateStatus


class CertificateCreate(SQLModel):
    """
    Submission data for a new certificate.
    Either `days_off` or `end_date` must be supplied.
    """
    start_date: date = Field(description="First day of absence.")
    days_off: Optional[int] = Field(
        default=None, ge=1, description="Length of the absence in days.")
    end_date: Optional[date] = Field(
        default=None, description="Last day of absence (inclusive).")
    reason: str = Field(default="", max_length=2000)


class ReviewPayload(SQLModel):
    """
    Review submitted by a staff member.
    `action` is validated by the review workflow so unknown values surface
    as INVALID_ACTION rather than a schema error.
    """
    action: str = Field(
        description="approve_pedagogy, approve_secretariat, approve_legacy or reject")
    comment: Optional[str] = Field(
        default=None, max_length=2000,
        description="Free text note. Required when rejecting.")


class ReviewResult(SQLModel):
    success: bool
    message: str
    status: CertificateStatus
    changed: bool


class ApprovalRead(SQLModel):
    approver_id: UUID
    at: datetime


class RejectionRead(ApprovalRead):
    reason: str


class OwnerSummary(SQLModel):
    id: UUID
    name: str
    email: str
    ra: Optional[str] = None
    class_group: Optional[str] = None


class CertificateRead(SQLModel):
    id: UUID
    owner_id: UUID
    start_date: date
    end_date: date
    days_off: int
    reason: str
    image_url: str
    status: CertificateStatus
    admin_note: str
    created_at: datetime
    updated_at: datetime


class CertificateReviewRead(CertificateRead):
    """Staff view: full approval detail and the submitting student."""
    pedagogy_approval: Optional[ApprovalRead] = None
    secretariat_approval: Optional[ApprovalRead] = None
    rejection: Optional[RejectionRead] = None
    owner: Optional[OwnerSummary] = None


class Pagination(SQLModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class CertificatePage(SQLModel):
    data: List[CertificateRead]
    pagination: Pagination
