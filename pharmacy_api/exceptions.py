"""Failure taxonomy for the purchase order operations.

Each error carries a stable ``code`` so the HTTP layer can map it to a
status code without inspecting messages.
"""

from typing import Optional


class PurchaseOrderError(Exception):
    code = "PURCHASE_ORDER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PurchaseOrderError):
    """Malformed input. The message is shown to the caller verbatim."""

    code = "VALIDATION_ERROR"


class NotFoundError(PurchaseOrderError):
    """Missing record, or one that belongs to another pharmacy."""

    code = "NOT_FOUND"

    def __init__(self, message: str = "Purchase order not found"):
        super().__init__(message)


class TerminalStateError(PurchaseOrderError):
    """The order's current status does not allow the requested operation."""

    code = "TERMINAL_STATE"

    def __init__(self, status: str, message: Optional[str] = None):
        self.status = status
        super().__init__(
            message or f"Purchase order is already '{status}' and can no longer be modified"
        )


class StorageError(PurchaseOrderError):
    code = "STORAGE_ERROR"
