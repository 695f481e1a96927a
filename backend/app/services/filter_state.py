from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..utils.slug import slugify
from .errors import InvalidRange

logger = logging.getLogger(__name__)


class FacetDimension(str, Enum):
    MAKE = "make"
    MODEL = "model"
    TRIM = "trim"
    YEAR = "year"
    CONDITION = "condition"
    VEHICLE_TYPE = "vehicle_type"
    DRIVE_TYPE = "drive_type"
    TRANSMISSION = "transmission"
    FUEL_TYPE = "fuel_type"
    EXTERIOR_COLOR = "exterior_color"
    INTERIOR_COLOR = "interior_color"
    SELLER_TYPE = "seller_type"
    DEALER = "dealer"
    CITY = "city"
    STATE = "state"


class MileageBucket(str, Enum):
    UNDER_15K = "Under 15,000"
    FROM_15K_TO_30K = "15,000 – 30,000"
    FROM_30K_TO_60K = "30,000 – 60,000"
    FROM_60K_TO_100K = "60,000 – 100,000"
    OVER_100K = "Over 100,000"

    @property
    def slug(self) -> str:
        return slugify(self.value)

    @property
    def bounds(self) -> Tuple[Optional[int], Optional[int]]:
        return _MILEAGE_BOUNDS[self]

    @classmethod
    def lookup(cls, value: Optional[str]) -> Optional["MileageBucket"]:
        """Match a display label or its slug; None when nothing matches."""
        token = slugify(value)
        if not token:
            return None
        for bucket in cls:
            if bucket.slug == token:
                return bucket
        return None


# inclusive on both ends; each bucket starts one mile above the previous one
_MILEAGE_BOUNDS: Dict[MileageBucket, Tuple[Optional[int], Optional[int]]] = {
    MileageBucket.UNDER_15K: (None, 15000),
    MileageBucket.FROM_15K_TO_30K: (15001, 30000),
    MileageBucket.FROM_30K_TO_60K: (30001, 60000),
    MileageBucket.FROM_60K_TO_100K: (60001, 100000),
    MileageBucket.OVER_100K: (100001, None),
}

LIST_FIELDS: Tuple[str, ...] = tuple(d.value for d in FacetDimension)
RANGE_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("price_min", "price_max"),
    ("year_min", "year_max"),
    ("payment_min", "payment_max"),
)
RANGE_FIELDS: Tuple[str, ...] = tuple(name for pair in RANGE_PAIRS for name in pair)
SCALAR_FIELDS: Tuple[str, ...] = ("mileage",) + RANGE_FIELDS


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except (TypeError, ValueError):
        return None


def _dedupe(values: Iterable[Any]) -> List[str]:
    out: List[str] = []
    seen: set[str] = set()
    for raw in values:
        if raw is None:
            continue
        value = str(raw).strip()
        if not value:
            continue
        key = slugify(value) or value.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
    return out


@dataclass
class FilterState:
    make: List[str] = field(default_factory=list)
    model: List[str] = field(default_factory=list)
    trim: List[str] = field(default_factory=list)
    year: List[str] = field(default_factory=list)
    condition: List[str] = field(default_factory=list)
    vehicle_type: List[str] = field(default_factory=list)
    drive_type: List[str] = field(default_factory=list)
    transmission: List[str] = field(default_factory=list)
    fuel_type: List[str] = field(default_factory=list)
    exterior_color: List[str] = field(default_factory=list)
    interior_color: List[str] = field(default_factory=list)
    seller_type: List[str] = field(default_factory=list)
    dealer: List[str] = field(default_factory=list)
    city: List[str] = field(default_factory=list)
    state: List[str] = field(default_factory=list)
    mileage: str = ""
    price_min: str = ""
    price_max: str = ""
    year_min: str = ""
    year_max: str = ""
    payment_min: str = ""
    payment_max: str = ""

    def __post_init__(self) -> None:
        for name in LIST_FIELDS:
            raw = getattr(self, name)
            if isinstance(raw, str):
                raw = [raw]
            setattr(self, name, _dedupe(raw or []))
        for name in SCALAR_FIELDS:
            raw = getattr(self, name)
            setattr(self, name, "" if raw is None else str(raw).strip())

    @classmethod
    def from_partial(cls, partial: Optional[Mapping[str, Any]] = None) -> "FilterState":
        """Merge a partial mapping onto the all-empty default; unknown keys are ignored."""
        if not partial:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in partial.items() if k in known and v is not None})

    def values(self, dimension: FacetDimension | str) -> List[str]:
        return list(getattr(self, FacetDimension(dimension).value))

    def without(self, *names: FacetDimension | str) -> "FilterState":
        cleared: Dict[str, Any] = {}
        for name in names:
            key = name.value if isinstance(name, FacetDimension) else name
            cleared[key] = [] if key in LIST_FIELDS else ""
        return replace(self, **cleared)

    def active_dimensions(self) -> List[FacetDimension]:
        return [d for d in FacetDimension if getattr(self, d.value)]

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def key(self) -> Tuple[Any, ...]:
        """Hashable identity; list order is ignored."""
        parts: List[Any] = []
        for name in LIST_FIELDS:
            parts.append(tuple(sorted(slugify(v) or v.casefold() for v in getattr(self, name))))
        for name in SCALAR_FIELDS:
            parts.append(getattr(self, name))
        return tuple(parts)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = list(value) if isinstance(value, list) else value
        return out


@dataclass(frozen=True)
class FacetOption:
    name: str
    count: int
    id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "count": self.count}
        if self.id is not None:
            out["id"] = self.id
        return out


FacetOptionSet = Dict[str, Tuple[FacetOption, ...]]


def empty_option_set() -> FacetOptionSet:
    return {d.value: () for d in FacetDimension}


def normalize_ranges(state: FilterState, *, strict: bool = False) -> FilterState:
    """Swap inverted min/max pairs, or raise InvalidRange when strict."""
    updates: Dict[str, str] = {}
    for low_name, high_name in RANGE_PAIRS:
        low_raw = getattr(state, low_name)
        high_raw = getattr(state, high_name)
        low = to_float(low_raw)
        high = to_float(high_raw)
        if low is None or high is None or low <= high:
            continue
        if strict:
            raise InvalidRange(low_name[: -len("_min")], low_raw, high_raw)
        logger.warning("swapping inverted range %s=%s %s=%s", low_name, low_raw, high_name, high_raw)
        updates[low_name] = high_raw
        updates[high_name] = low_raw
    if not updates:
        return state
    return replace(state, **updates)


def canonicalize_state(state: FilterState, vocabulary: Mapping[str, Iterable[str]]) -> FilterState:
    """Replace decoded display strings with the vocabulary names sharing their slug.

    Values without a vocabulary match are kept as they are.
    """
    updates: Dict[str, List[str]] = {}
    for name in LIST_FIELDS:
        current = getattr(state, name)
        if not current:
            continue
        by_slug: Dict[str, str] = {}
        for known in vocabulary.get(name, ()):
            by_slug.setdefault(slugify(known), known)
        resolved = [by_slug.get(slugify(value), value) for value in current]
        if resolved != current:
            updates[name] = resolved
    if not updates:
        return state
    return replace(state, **updates)


__all__ = [
    "FacetDimension",
    "MileageBucket",
    "FilterState",
    "FacetOption",
    "FacetOptionSet",
    "LIST_FIELDS",
    "RANGE_FIELDS",
    "RANGE_PAIRS",
    "SCALAR_FIELDS",
    "canonicalize_state",
    "empty_option_set",
    "normalize_ranges",
    "to_float",
]
