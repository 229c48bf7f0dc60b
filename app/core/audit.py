import uuid
from typing import Any, Dict, Optional
from loguru import logger
from sqlmodel import Session
from app.db.schema import AuditLog, AuditAction, utc_now

from app.db import core as db_core


def _perform_audit_log(
    user_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    action: AuditAction,
    changes: Dict[str, Any],
    ip_address: Optional[str] = None
):
    """
    Background worker.
    Creates its OWN session using the global engine, since the request
    session is closed by the time background tasks run.
    """
    try:
        with Session(db_core.engine) as session:
            log_entry = AuditLog(
                actor_user_id=user_id,
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                changes=changes,
                ip_address=ip_address,
                timestamp=utc_now()
            )
            session.add(log_entry)
            session.commit()

    except Exception:
        # Audit failures must not break the request that triggered them
        logger.exception(
            f"Audit log failed for {entity_type} {entity_id} ({action.value})")
