"""
Audit trail for administrative actions.

Entries are written after the primary change has been committed, from a
session of their own, and a failure to write one is logged and dropped.
Routers hand ``AuditLogger.record`` to FastAPI ``BackgroundTasks`` so the
response is not held up by the audit write.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from sqlalchemy.orm import Session

from core.config import settings
from database.connection import SessionLocal
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)

# Actions
CREATE_CATEGORY = "CREATE_CATEGORY"
UPDATE_CATEGORY = "UPDATE_CATEGORY"
DELETE_CATEGORY = "DELETE_CATEGORY"

# Resource types
RESOURCE_CATEGORY = "CATEGORY"


class AuditLogger:
    """Best-effort writer of audit entries"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, enabled: Optional[bool] = None):
        self.session_factory = session_factory
        self.enabled = settings.AUDIT_LOG_ENABLED if enabled is None else enabled

    def record(
        self,
        user_id: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str],
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Write one entry. Returns False instead of raising when the write fails."""
        if not self.enabled:
            return False

        db = None
        try:
            db = self.session_factory()
            entry = AuditLog(
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details or {},
                created_at=datetime.utcnow()
            )
            db.add(entry)
            db.commit()
            logger.info(f"Audit: {action} {resource_type}/{resource_id} by {user_id}")
            return True
        except Exception as e:
            if db is not None:
                db.rollback()
            logger.error(
                f"Failed to write audit entry {action} {resource_type}/{resource_id}: {str(e)}",
                exc_info=True
            )
            return False
        finally:
            if db is not None:
                db.close()


_default_audit_logger = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """FastAPI dependency returning the process-wide audit logger"""
    return _default_audit_logger


def list_audit_logs(
    db: Session,
    page: int = 1,
    limit: int = 20,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None
) -> Dict[str, Any]:
    """Audit entries, newest first."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id:
        query = query.filter(AuditLog.resource_id == resource_id)

    total = query.count()
    entries = query.order_by(AuditLog.created_at.desc()).offset((max(page, 1) - 1) * limit).limit(limit).all()

    return {
        "entries": [
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "action": entry.action,
                "resource_type": entry.resource_type,
                "resource_id": entry.resource_id,
                "details": entry.details,
                "created_at": entry.created_at,
            }
            for entry in entries
        ],
        "total": total,
    }
