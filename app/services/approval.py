"""
Two-stage review of absence certificates.

A certificate needs one approval from pedagogy and one from the secretariat
to become `approved`; the two may arrive in either order. Until then any
reviewer may reject instead, which freezes the record. This module only
computes the next state: loading, role gating and persistence belong to
CertificateService.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from app.core.exceptions import (
    AlreadyApproved, AlreadyRejected, InvalidAction, MissingRejectionReason,
)
from app.db.schema import CertificateStatus, utc_now
from app.utils.sanitize import sanitize_text


class ReviewAction(str, Enum):
    APPROVE_PEDAGOGY = "approve_pedagogy"
    APPROVE_SECRETARIAT = "approve_secretariat"
    # Sent by the older single-stage approval client
    APPROVE_LEGACY = "approve_legacy"
    REJECT = "reject"

    @classmethod
    def parse(cls, value: Union["ReviewAction", str, None]) -> "ReviewAction":
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(a.value for a in cls)
            raise InvalidAction(
                f"Invalid review action '{value}'. Expected one of: {allowed}.")


# The legacy approval counts as the secretariat's sign-off.
LEGACY_ACTION_ALIASES = {
    ReviewAction.APPROVE_LEGACY: ReviewAction.APPROVE_SECRETARIAT,
}


def resolve_action(action: ReviewAction) -> ReviewAction:
    return LEGACY_ACTION_ALIASES.get(action, action)


@dataclass(frozen=True)
class Approval:
    approver_id: Any
    at: datetime


@dataclass(frozen=True)
class Rejection:
    approver_id: Any
    at: datetime
    reason: str


@dataclass(frozen=True)
class ApprovalState:
    pedagogy: Optional[Approval] = None
    secretariat: Optional[Approval] = None
    rejection: Optional[Rejection] = None

    @property
    def status(self) -> CertificateStatus:
        return derive_status(self)

    @property
    def is_rejected(self) -> bool:
        return self.rejection is not None


@dataclass(frozen=True)
class MergeOutcome:
    state: ApprovalState
    # None when the existing note must be kept
    admin_note: Optional[str]
    changed: bool

    @property
    def status(self) -> CertificateStatus:
        return self.state.status


def derive_status(state: ApprovalState) -> CertificateStatus:
    if state.rejection is not None:
        return CertificateStatus.REJECTED
    if state.pedagogy and state.secretariat:
        return CertificateStatus.APPROVED
    if state.pedagogy:
        return CertificateStatus.APPROVED_BY_PEDAGOGY
    if state.secretariat:
        return CertificateStatus.APPROVED_BY_SECRETARIAT
    return CertificateStatus.PENDING


def describe_approvals(state: ApprovalState) -> str:
    """Cumulative approval phrase, e.g. 'Approved by pedagogy and secretariat'."""
    stages = []
    if state.pedagogy:
        stages.append("pedagogy")
    if state.secretariat:
        stages.append("secretariat")
    if not stages:
        return "Awaiting review"
    return "Approved by " + " and ".join(stages)


def merge_review(
    state: ApprovalState,
    action: Union[ReviewAction, str],
    actor_id: Any,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MergeOutcome:
    """
    Applies one review action to the current approval state.

    Approval slots are write-once: approving a stage that already holds an
    approval keeps the original approver and timestamp and reports
    `changed=False`. Rejection wins over a single approval and is terminal;
    a fully approved certificate is terminal too and cannot be rejected.

    Raises InvalidAction, AlreadyRejected, AlreadyApproved or
    MissingRejectionReason.
    """
    action = ReviewAction.parse(action)

    if state.is_rejected:
        raise AlreadyRejected(
            "Certificate was already rejected and can no longer be reviewed.")

    now = now or utc_now()
    note_comment = sanitize_text(comment) if comment else ""

    if action is ReviewAction.REJECT:
        if derive_status(state) is CertificateStatus.APPROVED:
            raise AlreadyApproved(
                "Certificate was already approved by both stages and can no longer be rejected.")
        if not note_comment:
            raise MissingRejectionReason(
                "A comment is required to reject a certificate.")
        rejection = Rejection(approver_id=actor_id, at=now,
                              reason=note_comment)
        return MergeOutcome(
            state=replace(state, rejection=rejection),
            admin_note=note_comment,
            changed=True,
        )

    target = resolve_action(action)
    merged = state
    if target is ReviewAction.APPROVE_PEDAGOGY and state.pedagogy is None:
        merged = replace(state, pedagogy=Approval(actor_id, now))
    elif target is ReviewAction.APPROVE_SECRETARIAT and state.secretariat is None:
        merged = replace(state, secretariat=Approval(actor_id, now))

    if merged == state:
        return MergeOutcome(state=state, admin_note=None, changed=False)

    note = describe_approvals(merged)
    if note_comment:
        note = f"{note} - {note_comment}"
    return MergeOutcome(state=merged, admin_note=note, changed=True)
