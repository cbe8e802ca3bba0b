"""
Product, reward and badge catalogs configured by administrators.

The rewards engine only reads from these; the admin endpoints write.
"""

from .models import Product, Reward, Badge, RewardType
from .service import InMemoryCatalog, CatalogError, CatalogItemNotFoundError

__all__ = [
    "Product",
    "Reward",
    "Badge",
    "RewardType",
    "InMemoryCatalog",
    "CatalogError",
    "CatalogItemNotFoundError",
]
