"""Activity log service — audit trail entries for purchase order events."""

from typing import Optional
from datetime import datetime
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pharmacy_api.models.activity_log import ActivityLog

logger = structlog.get_logger()

PO_CREATED = "PO_CREATED"
PO_UPDATED = "PO_UPDATED"
PO_STATUS_UPDATED = "PO_STATUS_UPDATED"
PO_CONFIRMED = "PO_CONFIRMED"
PO_PARTIALLY_RECEIVED = "PO_PARTIALLY_RECEIVED"
PO_RECEIVED = "PO_RECEIVED"
PO_DELETED = "PO_DELETED"


def _to_uuid(value, field_name: str, required: bool = False) -> Optional[uuid.UUID]:
    if value is None:
        if required:
            raise ValueError(f"{field_name} is required")
        return None
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        if required:
            raise ValueError(f"{field_name} must be a valid UUID")
        logger.warning("activity_invalid_uuid", field=field_name, value=str(value))
        return None


async def record_activity(
    session: AsyncSession,
    action: str,
    pharmacy_id,
    details: Optional[dict] = None,
    user_id=None,
) -> ActivityLog:
    """
    Create an activity log entry.

    Uses session.flush() — caller owns the transaction.
    """
    entry = ActivityLog(
        pharmacy_id=_to_uuid(pharmacy_id, "pharmacy_id", required=True),
        user_id=_to_uuid(user_id, "user_id"),
        action=action,
        details=details,
        created_at=datetime.utcnow(),
    )
    session.add(entry)
    await session.flush()

    logger.info(
        "activity_recorded",
        action=action,
        pharmacy_id=str(pharmacy_id),
        user_id=str(user_id) if user_id else None,
    )
    return entry
