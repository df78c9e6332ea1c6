"""
Business-rule failures raised by the optimizer services.

All of them are recoverable by the caller. The API layer renders them with
their ``status_code``; infrastructure errors (SQLAlchemy, driver) are never
wrapped and propagate unchanged.
"""
from typing import Any, Dict, Optional


class WMSOptimizationError(Exception):
    """Base exception for optimizer errors."""
    status_code = 400
    default_error_code = "WMS_ERROR"

    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(WMSOptimizationError):
    """Referenced warehouse, location, product or picking order does not exist."""
    status_code = 404
    default_error_code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            f"{entity} not found: {identifier}",
            details={"entity": entity, "id": str(identifier)},
        )


class InsufficientCapacityError(WMSOptimizationError):
    """No location satisfies the placement constraints."""
    status_code = 400
    default_error_code = "INSUFFICIENT_CAPACITY"

    def __init__(self, message: str = "No suitable location found", constraints: Optional[Dict] = None):
        self.constraints = constraints or {}
        super().__init__(message, details={"constraints": self.constraints})


class InsufficientStockError(WMSOptimizationError):
    """Requested pick quantity exceeds available stock for a product."""
    status_code = 409
    default_error_code = "INSUFFICIENT_STOCK"

    def __init__(
        self, product_id: Any, available: int, requested: int, message: str = None, sku: str = None
    ):
        self.product_id = product_id
        self.sku = sku
        self.available = available
        self.requested = requested
        super().__init__(
            message or (
                f"Insufficient stock for product {sku or product_id}. "
                f"Available: {available}, Requested: {requested}"
            ),
            details={
                "product_id": str(product_id),
                "sku": sku,
                "available": available,
                "requested": requested,
            },
        )


class InvalidStateTransitionError(WMSOptimizationError):
    """Operation requires the record to be in a different lifecycle state."""
    status_code = 409
    default_error_code = "INVALID_STATE"

    def __init__(self, entity: str, current_state: str, target_state: str):
        self.entity = entity
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Cannot move {entity} from '{current_state}' to '{target_state}'",
            details={
                "entity": entity,
                "current_state": current_state,
                "target_state": target_state,
            },
        )


class DegenerateInputError(WMSOptimizationError):
    """Input that would make a calculation undefined (empty ranges, zero divisors)."""
    status_code = 422
    default_error_code = "DEGENERATE_INPUT"
