import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, JSON, Uuid, Index, desc
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_api.database import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    pharmacy_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_activity_pharmacy", "pharmacy_id"),
        Index("idx_activity_created", desc("created_at")),
    )
