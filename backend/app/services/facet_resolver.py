from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..utils.redis_cache import build_facet_options_key, cache_get_json, cache_set_json
from .cascade import dependents_of
from .filter_state import FacetDimension, FacetOption, FacetOptionSet, FilterState

if TYPE_CHECKING:
    from ..catalog.base import Catalog, ItemSummary

logger = logging.getLogger(__name__)


class FacetPolicy(str, Enum):
    # each dimension is counted with every filter applied except its own
    EXCLUDE_SELF = "exclude_self"
    # every dimension is counted over the fully filtered candidate set
    INCLUDE_SELF = "include_self"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FacetPolicy":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            logger.warning("unknown facet policy %r, using %s", value, cls.EXCLUDE_SELF.value)
            return cls.EXCLUDE_SELF


def count_facets(items: Iterable["ItemSummary"]) -> Dict[str, List[FacetOption]]:
    """Count observed values per dimension across a candidate set.

    Dealers are keyed by account number when one is known, so two dealers
    sharing a display name stay separate options.
    """
    buckets: Dict[str, Dict[str, List[Any]]] = {d.value: {} for d in FacetDimension}
    for item in items:
        for dim in FacetDimension:
            name = item.facet_value(dim)
            if not name:
                continue
            ident = item.dealer_account if dim is FacetDimension.DEALER else None
            key = f"id:{ident}" if ident else name
            entry = buckets[dim.value].get(key)
            if entry is None:
                buckets[dim.value][key] = [name, 1, ident]
            else:
                entry[1] += 1
    return {
        dim: [FacetOption(name=name, count=count, id=ident) for name, count, ident in entries.values()]
        for dim, entries in buckets.items()
    }


def merge_options(options: Iterable[FacetOption]) -> List[FacetOption]:
    merged: Dict[str, List[Any]] = {}
    for opt in options:
        name = (opt.name or "").strip()
        if not name or opt.count <= 0:
            continue
        key = f"id:{opt.id}" if opt.id else name
        entry = merged.get(key)
        if entry is None:
            merged[key] = [name, int(opt.count), opt.id]
        else:
            entry[1] += int(opt.count)
    return [FacetOption(name=name, count=count, id=ident) for name, count, ident in merged.values()]


def order_options(dimension: str, options: Sequence[FacetOption]) -> Tuple[FacetOption, ...]:
    if dimension == FacetDimension.MAKE.value:
        return tuple(sorted(options, key=lambda o: (o.name.casefold(), o.name)))
    return tuple(sorted(options, key=lambda o: (-o.count, o.name.casefold(), o.name)))


def option_set_to_json(options: Mapping[str, Sequence[FacetOption]]) -> Dict[str, List[Dict[str, Any]]]:
    return {dim: [o.as_dict() for o in opts] for dim, opts in options.items()}


def option_set_from_json(raw: Mapping[str, Any]) -> FacetOptionSet:
    out: FacetOptionSet = {}
    for dim in FacetDimension:
        entries = raw.get(dim.value) or []
        out[dim.value] = tuple(
            FacetOption(name=str(e["name"]), count=int(e["count"]), id=e.get("id")) for e in entries
        )
    return out


def relaxed_state(state: FilterState, dimension: FacetDimension) -> FilterState:
    """State without the dimension's own selection and its cascade dependents."""
    return state.without(dimension, *dependents_of(dimension))


class FacetOptionResolver:
    def __init__(
        self,
        catalog: "Catalog",
        *,
        policy: FacetPolicy | str = FacetPolicy.EXCLUDE_SELF,
        cache_ttl: int = 0,
    ) -> None:
        self.catalog = catalog
        self.policy = FacetPolicy.parse(policy) if isinstance(policy, str) else policy
        self.cache_ttl = cache_ttl

    def plan(self, state: FilterState) -> List[Tuple[FilterState, List[str]]]:
        """Distinct states to aggregate, each with the dimensions it answers."""
        if self.policy is FacetPolicy.INCLUDE_SELF:
            return [(state, [d.value for d in FacetDimension])]
        groups: Dict[Tuple[Any, ...], Tuple[FilterState, List[str]]] = {}
        for dim in FacetDimension:
            relaxed = relaxed_state(state, dim) if state.values(dim) else state
            key = relaxed.key()
            if key not in groups:
                groups[key] = (relaxed, [])
            groups[key][1].append(dim.value)
        return list(groups.values())

    async def resolve(self, state: Optional[FilterState] = None) -> FacetOptionSet:
        state = state or FilterState()
        cache_key = build_facet_options_key(state, self.policy.value) if self.cache_ttl > 0 else None
        if cache_key:
            cached = await cache_get_json(cache_key)
            if cached is not None:
                logger.debug("facet cache hit key=%s", cache_key)
                return option_set_from_json(cached)

        plan = self.plan(state)
        results = await asyncio.gather(*(self.catalog.aggregate_facets(s) for s, _ in plan))
        options: FacetOptionSet = {d.value: () for d in FacetDimension}
        for (_, dims), aggregated in zip(plan, results):
            for dim in dims:
                options[dim] = order_options(dim, merge_options(aggregated.get(dim) or []))
        logger.info(
            "facets resolved policy=%s aggregations=%s active=%s",
            self.policy.value,
            len(plan),
            [d.value for d in state.active_dimensions()],
        )
        if cache_key:
            await cache_set_json(cache_key, option_set_to_json(options), self.cache_ttl)
        return options


__all__ = [
    "FacetOptionResolver",
    "FacetPolicy",
    "count_facets",
    "merge_options",
    "option_set_from_json",
    "option_set_to_json",
    "order_options",
    "relaxed_state",
]
