from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.core.dependencies import get_current_user, get_certificate_service, require_roles
from app.db.schema import CertificateStatus, User, UserRole, STAFF_ROLES
from app.models.certificate import (
    CertificateCreate, CertificatePage, CertificateRead, CertificateReviewRead,
    ReviewPayload, ReviewResult,
)
from app.services.certificate import CertificateService

router = APIRouter()
admin_router = APIRouter()


@router.post(
    "/",
    response_model=CertificateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Certificate",
    description="Upload a medical absence certificate. Send either days_off or end_date."
)
def create_certificate(
    start_date: date = Form(...),
    days_off: Optional[int] = Form(default=None, ge=1),
    end_date: Optional[date] = Form(default=None),
    reason: str = Form(default="", max_length=2000),
    image: Optional[UploadFile] = File(default=None),
    current_user: User = Depends(require_roles(UserRole.STUDENT)),
    service: CertificateService = Depends(get_certificate_service)
):
    data = CertificateCreate(
        start_date=start_date, days_off=days_off, end_date=end_date, reason=reason)
    return service.create(current_user, data, image)


@router.get(
    "/",
    response_model=CertificatePage,
    status_code=status.HTTP_200_OK,
    summary="List Certificates",
    description="Paginated list. Students only see their own certificates."
)
def list_certificates(
    owner_id: Optional[UUID] = None,
    status_filter: Optional[CertificateStatus] = Query(
        default=None, alias="status"),
    page: int = 1,
    limit: int = 10,
    current_user: User = Depends(get_current_user),
    service: CertificateService = Depends(get_certificate_service)
):
    return service.list_for_user(current_user, owner_id, status_filter, page, limit)


@router.get(
    "/{certificate_id}",
    response_model=CertificateRead,
    status_code=status.HTTP_200_OK,
    summary="Get Certificate"
)
def get_certificate(
    certificate_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CertificateService = Depends(get_certificate_service)
):
    return service.get(current_user, certificate_id)


@admin_router.get(
    "/",
    response_model=List[CertificateReviewRead],
    status_code=status.HTTP_200_OK,
    summary="Review Queue",
    description="Every certificate with owner and approval detail, newest first."
)
def list_for_review(
    status_filter: Optional[CertificateStatus] = Query(
        default=None, alias="status"),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
    service: CertificateService = Depends(get_certificate_service)
):
    return service.list_for_review(status_filter)


@admin_router.patch(
    "/{certificate_id}/review",
    response_model=ReviewResult,
    status_code=status.HTTP_200_OK,
    summary="Review Certificate",
    description=(
        "Approve on behalf of pedagogy or the secretariat, or reject. "
        "A certificate is approved once both stages have signed off."
    )
)
def review_certificate(
    certificate_id: UUID,
    payload: ReviewPayload,
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
    service: CertificateService = Depends(get_certificate_service)
):
    return service.review(current_user, certificate_id, payload)
