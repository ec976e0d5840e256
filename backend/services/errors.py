"""
Error taxonomy of the inventory core.

Every recoverable failure derives from StockroomError and carries the HTTP
status it maps to, a stable machine-readable code and any structured context
(e.g. the available quantity for InsufficientStock). LedgerCorruption sits
outside that hierarchy and maps to a server error.
"""
from typing import Any, Dict, Optional


class StockroomError(Exception):
    status_code = 400
    code = "STOCKROOM_ERROR"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"message": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class ValidationError(StockroomError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, **extra: Any):
        super().__init__(message, field=field, **extra)


class InvalidQuantity(ValidationError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, message: Optional[str] = None):
        super().__init__(
            message or f"Quantity must not be negative (got {quantity})",
            field="quantity",
            quantity=quantity,
        )


class NotFound(StockroomError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{entity} not found",
            entity=entity,
            entity_id=entity_id,
        )


class DuplicateKey(StockroomError):
    status_code = 409
    code = "DUPLICATE_KEY"

    def __init__(self, entity: str, field: str, value: Any):
        super().__init__(
            f"{entity} with {field} '{value}' already exists",
            entity=entity,
            field=field,
            value=value,
        )


class ReferentialConflict(StockroomError):
    status_code = 409
    code = "REFERENTIAL_CONFLICT"

    def __init__(self, entity: str, entity_id: Any, dependents: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot delete {entity} {entity_id}: referenced by {dependents}",
            entity=entity,
            entity_id=entity_id,
            dependents=dependents,
        )


class InsufficientStock(StockroomError):
    status_code = 409
    code = "INSUFFICIENT_STOCK"

    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            "Insufficient inventory in source location",
            available=available,
            requested=requested,
        )


class InvalidTransition(StockroomError):
    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change movement status from '{current}' to '{requested}'",
            current=current,
            requested=requested,
        )


class LedgerCorruption(Exception):
    """A stored ledger quantity is negative; some earlier write was wrong."""

    def __init__(self, product_id: int, storage_area_id: int, quantity: int):
        self.product_id = product_id
        self.storage_area_id = storage_area_id
        self.quantity = quantity
        super().__init__(
            f"Negative quantity {quantity} stored for product {product_id} in area {storage_area_id}"
        )
