"""
Which staff roles may perform which review action.

The approval workflow trusts its caller to have checked these; the API
layer does so before handing a review to CertificateService.
"""
from typing import Dict, FrozenSet

from app.db.schema import UserRole
from app.services.approval import ReviewAction


REVIEW_PERMISSIONS: Dict[ReviewAction, FrozenSet[UserRole]] = {
    ReviewAction.APPROVE_PEDAGOGY: frozenset({UserRole.PEDAGOGY, UserRole.ADMIN}),
    ReviewAction.APPROVE_SECRETARIAT: frozenset({UserRole.SECRETARIAT, UserRole.ADMIN}),
    ReviewAction.APPROVE_LEGACY: frozenset({UserRole.SECRETARIAT, UserRole.ADMIN}),
    ReviewAction.REJECT: frozenset({UserRole.PEDAGOGY, UserRole.SECRETARIAT, UserRole.ADMIN}),
}

ROLE_NAMES_PT = {
    UserRole.STUDENT: "Aluno",
    UserRole.PEDAGOGY: "Pedagogia",
    UserRole.SECRETARIAT: "Secretaria",
    UserRole.ADMIN: "Administrador",
}


def can_review(role: UserRole, action: ReviewAction) -> bool:
    return role in REVIEW_PERMISSIONS.get(action, frozenset())
