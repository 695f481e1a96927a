from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, Tuple

from ..utils.slug import slugify
from .filter_state import SCALAR_FIELDS, FacetDimension, FilterState

# make -> model -> trim; no other facet has dependents.
DEPENDENTS: Dict[FacetDimension, Tuple[FacetDimension, ...]] = {
    FacetDimension.MAKE: (FacetDimension.MODEL, FacetDimension.TRIM),
    FacetDimension.MODEL: (FacetDimension.TRIM,),
}


def dependents_of(dimension: FacetDimension | str) -> Tuple[FacetDimension, ...]:
    return DEPENDENTS.get(FacetDimension(dimension), ())


def _match_key(value: str) -> str:
    return slugify(value) or value.strip().casefold()


def _changed(before: FilterState, after: FilterState, dimension: FacetDimension) -> bool:
    return {_match_key(v) for v in before.values(dimension)} != {_match_key(v) for v in after.values(dimension)}


def apply_cascade(before: FilterState, after: FilterState) -> FilterState:
    """Clear model/trim when make changed, and trim when model changed."""
    for dimension in (FacetDimension.MAKE, FacetDimension.MODEL):
        if _changed(before, after, dimension):
            return after.without(*dependents_of(dimension))
    return after


def set_values(state: FilterState, dimension: FacetDimension | str, values: Iterable[str]) -> FilterState:
    dim = FacetDimension(dimension)
    updated = replace(state, **{dim.value: list(values)})
    return apply_cascade(state, updated)


def toggle(state: FilterState, dimension: FacetDimension | str, value: str) -> FilterState:
    """Add value to the facet, or remove it when already selected."""
    dim = FacetDimension(dimension)
    current = state.values(dim)
    needle = _match_key(value)
    remaining = [v for v in current if _match_key(v) != needle]
    if len(remaining) == len(current):
        remaining = current + [value]
    return set_values(state, dim, remaining)


def clear(state: FilterState, dimension: FacetDimension | str) -> FilterState:
    return set_values(state, dimension, [])


def set_scalar(state: FilterState, name: str, value: str | None) -> FilterState:
    if name not in SCALAR_FIELDS:
        raise KeyError(name)
    return replace(state, **{name: value or ""})


__all__ = ["DEPENDENTS", "apply_cascade", "clear", "dependents_of", "set_scalar", "set_values", "toggle"]
