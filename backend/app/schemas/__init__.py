from .listing import (
    ApplyFilterIn,
    ApplyFilterOut,
    CombinedResponse,
    FacetOptionOut,
    FiltersResponse,
    FilterStateIn,
    ItemOut,
    MetaOut,
    SellerOut,
)

__all__ = [
    "ApplyFilterIn",
    "ApplyFilterOut",
    "CombinedResponse",
    "FacetOptionOut",
    "FiltersResponse",
    "FilterStateIn",
    "ItemOut",
    "MetaOut",
    "SellerOut",
]
