"""Central model registry — import all models so Alembic autodiscover works."""

from pharmacy_api.database import Base  # noqa: F401

from pharmacy_api.models.product import Product  # noqa: F401
from pharmacy_api.models.purchase_order import PurchaseOrder, PurchaseOrderLine  # noqa: F401
from pharmacy_api.models.activity_log import ActivityLog  # noqa: F401
