from .base import (
    BaseCatalog,
    Catalog,
    ItemPage,
    ItemSummary,
    Pagination,
    SellerDirectory,
    SellerLabel,
    SortKey,
)
from .memory import InMemoryCatalog, StaticSellerDirectory, demo_items
from .remote import RemoteCatalog
from .sql import SqlCatalog, SqlSellerDirectory

__all__ = [
    "BaseCatalog",
    "Catalog",
    "InMemoryCatalog",
    "ItemPage",
    "ItemSummary",
    "Pagination",
    "RemoteCatalog",
    "SellerDirectory",
    "SellerLabel",
    "SortKey",
    "SqlCatalog",
    "SqlSellerDirectory",
    "StaticSellerDirectory",
    "demo_items",
]
