"""
Domain errors raised by the service layer.

Views translate these into API responses; nothing below the view layer
renders an error to the user.
"""
from decimal import Decimal


class ServiceError(Exception):
    """Base class for all service-layer errors."""
    pass


class NotFoundError(ServiceError):
    """Raised when a referenced record does not exist."""
    pass


class ValidationError(ServiceError):
    """Raised when caller-supplied input violates a precondition."""
    pass


class AlreadyInvoicedError(ValidationError):
    """Raised when a task already has an invoice."""
    def __init__(self, task_id):
        self.task_id = task_id
        super().__init__(f"Task {task_id} has already been invoiced")


class InvalidTransitionError(ServiceError):
    """Raised when a status change is not allowed by the transition table."""
    def __init__(self, entity: str, current: str, requested: str):
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change {entity} status from {current} to {requested}"
        )


class InsufficientStockError(ServiceError):
    """Raised when there's not enough stock for a usage."""
    def __init__(self, item_id, requested: Decimal, available: Decimal):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(f"Not enough in stock, available: {available}")


class PersistenceError(ServiceError):
    """Raised when the database call itself fails."""
    pass
