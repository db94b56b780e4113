"""ORM models

Importing this package registers every table with ``Base.metadata``.
"""
from .item import Item, ItemCategory, ItemStatus, QcStatus
from .personal_item import PersonalItem, PersonalItemStatus
from .seller import Seller, SellerPlatform
from .settings import Settings
from .operation_log import OperationLog

__all__ = [
    "Item",
    "ItemCategory",
    "ItemStatus",
    "QcStatus",
    "PersonalItem",
    "PersonalItemStatus",
    "Seller",
    "SellerPlatform",
    "Settings",
    "OperationLog",
]
