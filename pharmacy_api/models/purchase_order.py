import uuid
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    DateTime,
    Date,
    Text,
    Uuid,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from pharmacy_api.database import Base


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    EXPORTED = "EXPORTED"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    pharmacy_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    order_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PurchaseOrderStatus.DRAFT.value
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    # Snapshot taken at confirmation; receiving never rewrites it.
    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("total_cost >= 0", name="chk_po_total_cost"),
        Index("idx_po_pharmacy", "pharmacy_id"),
        Index("idx_po_status", "status"),
    )


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # NULL until the supplier confirms pricing
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    received_quantity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_po_line_qty"),
        CheckConstraint(
            "received_quantity >= 0", name="chk_po_line_received_qty"
        ),
        # Zero is a placeholder on DRAFT lines; confirmation requires > 0
        CheckConstraint(
            "unit_cost IS NULL OR unit_cost >= 0", name="chk_po_line_unit_cost"
        ),
        UniqueConstraint("purchase_order_id", "line_number", name="uq_po_line_number"),
        Index("idx_po_lines_po", "purchase_order_id"),
    )
