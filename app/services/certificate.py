import math
from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.exceptions import CertificateError, PersistenceFailure, RecordNotFound
from app.core.permissions import can_review
from app.db.schema import Certificate, CertificateStatus, User, UserRole, utc_now
from app.models.certificate import (
    ApprovalRead, CertificateCreate, CertificatePage, CertificateRead,
    CertificateReviewRead, OwnerSummary, Pagination, RejectionRead,
    ReviewPayload, ReviewResult,
)
from app.services.approval import (
    Approval, ApprovalState, MergeOutcome, Rejection, ReviewAction, merge_review,
)
from app.utils.file_storage import delete_stored_file, save_certificate_image
from app.utils.sanitize import sanitize_text


def state_from_record(cert: Certificate) -> ApprovalState:
    """Builds the review state from the persisted slot columns."""
    pedagogy = None
    if cert.pedagogy_approved_by is not None:
        pedagogy = Approval(cert.pedagogy_approved_by,
                            cert.pedagogy_approved_at)

    secretariat = None
    if cert.secretariat_approved_by is not None:
        secretariat = Approval(cert.secretariat_approved_by,
                               cert.secretariat_approved_at)

    rejection = None
    if cert.rejected_by is not None:
        rejection = Rejection(cert.rejected_by, cert.rejected_at,
                              cert.rejection_reason or "")

    return ApprovalState(pedagogy=pedagogy, secretariat=secretariat,
                         rejection=rejection)


def record_fields(outcome: MergeOutcome, now: datetime) -> dict:
    """Column values to persist for a merged review."""
    state = outcome.state
    fields = {
        "status": outcome.status,
        "updated_at": now,
    }
    if state.pedagogy:
        fields["pedagogy_approved_by"] = state.pedagogy.approver_id
        fields["pedagogy_approved_at"] = state.pedagogy.at
    if state.secretariat:
        fields["secretariat_approved_by"] = state.secretariat.approver_id
        fields["secretariat_approved_at"] = state.secretariat.at
    if state.rejection:
        fields["rejected_by"] = state.rejection.approver_id
        fields["rejected_at"] = state.rejection.at
        fields["rejection_reason"] = state.rejection.reason
    if outcome.admin_note is not None:
        fields["admin_note"] = outcome.admin_note
    return fields


def to_read(cert: Certificate) -> CertificateRead:
    return CertificateRead(
        id=cert.id,
        owner_id=cert.owner_id,
        start_date=cert.start_date,
        end_date=cert.end_date,
        days_off=cert.days_off,
        reason=cert.reason,
        image_url=cert.image_url,
        # Always derived from the slots, never trusted from the column
        status=state_from_record(cert).status,
        admin_note=cert.admin_note,
        created_at=cert.created_at,
        updated_at=cert.updated_at,
    )


def to_review_read(cert: Certificate) -> CertificateReviewRead:
    state = state_from_record(cert)
    owner = cert.owner
    return CertificateReviewRead(
        **to_read(cert).model_dump(),
        pedagogy_approval=ApprovalRead(
            approver_id=state.pedagogy.approver_id, at=state.pedagogy.at
        ) if state.pedagogy else None,
        secretariat_approval=ApprovalRead(
            approver_id=state.secretariat.approver_id, at=state.secretariat.at
        ) if state.secretariat else None,
        rejection=RejectionRead(
            approver_id=state.rejection.approver_id, at=state.rejection.at,
            reason=state.rejection.reason
        ) if state.rejection else None,
        owner=OwnerSummary(
            id=owner.id, name=owner.name, email=owner.email,
            ra=owner.ra, class_group=owner.class_group
        ) if owner else None,
    )


class CertificateService:
    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _resolve_period(self, data: CertificateCreate, today: date) -> tuple[date, int]:
        """
        Returns (end_date, days_off) for a submission.
        Raises HTTPException 400 when the dates break the submission rules.
        """
        if data.days_off is None and data.end_date is None:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                "Either days_off or end_date is required.")

        if data.end_date is not None and data.end_date < data.start_date:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                "End date cannot be before the start date.")

        if data.days_off is not None:
            days_off = data.days_off
        else:
            days_off = (data.end_date - data.start_date).days + 1

        # Bounded before any date arithmetic
        if days_off > settings.max_leave_days:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"The absence cannot exceed {settings.max_leave_days} days.")

        elapsed = (today - data.start_date).days
        if elapsed > settings.submission_grace_days:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"The certificate must be submitted at most "
                f"{settings.submission_grace_days} days after its start date.")
        if elapsed < -settings.max_leave_days:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                "The start date is too far in the future.")

        end_date = data.start_date + timedelta(days=days_off - 1)
        if data.end_date is not None and data.end_date != end_date:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"days_off ({days_off}) does not match the period "
                f"{data.start_date} to {data.end_date}.")

        return end_date, days_off

    def create(self, owner: User, data: CertificateCreate,
               image: Optional[UploadFile] = None) -> CertificateRead:
        end_date, days_off = self._resolve_period(data, date.today())

        image_url, image_path = "", ""
        if image is not None and image.filename:
            image_url, image_path = save_certificate_image(image, owner.id)

        cert = Certificate(
            owner_id=owner.id,
            start_date=data.start_date,
            end_date=end_date,
            days_off=days_off,
            reason=sanitize_text(data.reason),
            image_url=image_url,
            image_path=image_path,
            status=CertificateStatus.PENDING,
        )
        try:
            self.session.add(cert)
            self.session.commit()
            self.session.refresh(cert)
        except SQLAlchemyError as e:
            self.session.rollback()
            delete_stored_file(image_path)
            logger.exception(f"Failed to create certificate for {owner.id}")
            raise PersistenceFailure("Failed to create certificate.") from e

        logger.info(f"Certificate {cert.id} submitted by {owner.id}")
        return to_read(cert)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _load(self, certificate_id: UUID) -> Certificate:
        """Reads the record fresh from the database, bypassing the identity map."""
        cert = self.session.exec(
            select(Certificate)
            .where(Certificate.id == certificate_id)
            .execution_options(populate_existing=True)
        ).first()
        if not cert:
            raise RecordNotFound(f"Certificate {certificate_id} not found.")
        return cert

    def get(self, user: User, certificate_id: UUID) -> CertificateRead:
        cert = self._load(certificate_id)
        if user.role == UserRole.STUDENT and cert.owner_id != user.id:
            # Students never learn whether someone else's record exists
            raise RecordNotFound(f"Certificate {certificate_id} not found.")
        return to_read(cert)

    def list_for_user(
        self,
        user: User,
        owner_id: Optional[UUID] = None,
        status_filter: Optional[CertificateStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> CertificatePage:
        """
        Paginated listing, newest first.
        Students only ever see their own certificates.
        """
        if page < 1 or limit < 1 or limit > 100:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST, "Invalid pagination parameters.")

        if user.role == UserRole.STUDENT:
            if owner_id is not None and owner_id != user.id:
                raise HTTPException(
                    status.HTTP_403_FORBIDDEN,
                    "You may only list your own certificates.")
            owner_id = user.id

        statement = select(Certificate)
        if owner_id is not None:
            statement = statement.where(Certificate.owner_id == owner_id)
        if status_filter is not None:
            statement = statement.where(Certificate.status == status_filter)

        total = self.session.exec(
            select(func.count()).select_from(statement.subquery())
        ).one()

        rows = self.session.exec(
            statement.order_by(Certificate.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        total_pages = math.ceil(total / limit)
        return CertificatePage(
            data=[to_read(c) for c in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_next_page=page < total_pages,
                has_previous_page=page > 1,
            ),
        )

    def list_for_review(self, status_filter: Optional[CertificateStatus] = None) -> List[CertificateReviewRead]:
        """Staff listing of every certificate with approval detail and owner."""
        statement = select(Certificate)
        if status_filter is not None:
            statement = statement.where(Certificate.status == status_filter)
        rows = self.session.exec(
            statement.order_by(Certificate.created_at.desc())).all()
        return [to_review_read(c) for c in rows]

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def _write_if_unchanged(self, cert: Certificate, fields: dict) -> bool:
        """
        Conditional update keyed on the version read. Returns False when
        another reviewer wrote the record in between.
        """
        result = self.session.exec(
            update(Certificate)
            .where(Certificate.id == cert.id, Certificate.version == cert.version)
            .values(**fields, version=cert.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            return False
        self.session.commit()
        return True

    def review(self, actor: User, certificate_id: UUID, payload: ReviewPayload) -> ReviewResult:
        """
        Applies a staff review to a certificate.

        The record is re-read and the review re-merged whenever a concurrent
        reviewer wins the conditional update, so two approvals arriving at
        the same time both land. Write failures are not retried.
        """
        action = ReviewAction.parse(payload.action)
        if not can_review(actor.role, action):
            logger.warning(
                f"User {actor.id} ({actor.role.value}) may not {action.value}")
            raise HTTPException(
                status.HTTP_403_FORBIDDEN,
                f"Your profile cannot perform '{action.value}'.")

        for attempt in range(1, settings.review_max_attempts + 1):
            cert = self._load(certificate_id)
            state = state_from_record(cert)

            try:
                outcome = merge_review(state, action, actor.id, payload.comment)
            except CertificateError as e:
                logger.warning(
                    f"Review {action.value} on {certificate_id} by {actor.id} refused: {e}")
                raise

            if not outcome.changed:
                logger.info(
                    f"Review {action.value} on {certificate_id} by {actor.id} changed nothing")
                return ReviewResult(
                    success=True,
                    message=f"Certificate already {outcome.status.value}.",
                    status=outcome.status,
                    changed=False,
                )

            now = utc_now()
            try:
                written = self._write_if_unchanged(
                    cert, record_fields(outcome, now))
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.exception(
                    f"Failed to persist review of certificate {certificate_id}")
                raise PersistenceFailure(
                    "Failed to save the review. Please try again.") from e

            if written:
                logger.info(
                    f"Certificate {certificate_id} {action.value} by {actor.id}: "
                    f"{state.status.value} -> {outcome.status.value}")
                return ReviewResult(
                    success=True,
                    message=f"Certificate {outcome.status.value}.",
                    status=outcome.status,
                    changed=True,
                )

            logger.warning(
                f"Concurrent review on certificate {certificate_id}, "
                f"re-merging (attempt {attempt}/{settings.review_max_attempts})")

        raise PersistenceFailure(
            "The certificate is being reviewed concurrently. Please try again.")
