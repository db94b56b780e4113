"""Service-layer exceptions, translated to HTTP errors by the routers"""
from typing import Optional


class ItemValidationError(ValueError):
    """Caller-fixable input problem; raised before any derivation or write"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ItemNotFoundError(LookupError):
    """Referenced record does not exist"""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        self.message = f"{entity} not found"
        super().__init__(f"{self.message}: {entity_id}")


class InvalidTransitionError(ValueError):
    """Requested transition is not offered from the item's current state"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
