"""Canonical, SEO-friendly listing URLs for a FilterState.

A single make (and then a single model) is embedded in the path,
``/cars/toyota/camry``; everything else is a comma-joined query parameter
emitted in a fixed order so that the same filters always produce the same
bytes. ``parse`` is the lossy inverse and never raises: a fragment that
cannot be decoded is dropped and the rest of the URL still applies.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, quote, unquote, urlsplit

from ..utils.slug import slugify, unslugify
from .errors import MalformedURLFragment
from .filter_state import FilterState, MileageBucket, to_float

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "cars"

# query parameter -> FilterState list field
LIST_PARAMS: Dict[str, str] = {
    "trim": "trim",
    "condition": "condition",
    "body_type": "vehicle_type",
    "city": "city",
    "dealer": "dealer",
    "drivetrain": "drive_type",
    "exterior_color": "exterior_color",
    "fuel_type": "fuel_type",
    "interior_color": "interior_color",
    "make": "make",
    "model": "model",
    "seller_type": "seller_type",
    "state": "state",
    "transmission": "transmission",
}
NUMERIC_PARAMS: Tuple[str, ...] = (
    "price_min",
    "price_max",
    "year_min",
    "year_max",
    "payment_min",
    "payment_max",
)
# make/model lead the query when they could not be embedded in the path;
# year / year_min / year_max occupy the "year" slot.
QUERY_ORDER: Tuple[str, ...] = (
    "make",
    "model",
    "trim",
    "year",
    "condition",
    "body_type",
    "price_min",
    "price_max",
    "city",
    "dealer",
    "drivetrain",
    "exterior_color",
    "fuel_type",
    "interior_color",
    "mileage",
    "payment_min",
    "payment_max",
    "seller_type",
    "state",
    "transmission",
)

QueryInput = Union[str, Mapping[str, Any], Iterable[Tuple[str, str]], None]


def _slugs(values: Iterable[str]) -> List[str]:
    return [s for s in (slugify(v) for v in values) if s]


def _plain_number(value: str) -> str:
    # "25,000" and "25000" are the same bound
    return value.replace(",", "").strip()


def _number(value: str) -> Optional[str]:
    value = _plain_number(value or "")
    if not value or to_float(value) is None:
        return None
    return quote(value, safe=".-")


def _year_params(state: FilterState) -> List[Tuple[str, str]]:
    out: List[Tuple[str, str]] = []
    years = _slugs(state.year)
    low = _number(state.year_min)
    high = _number(state.year_max)
    if years:
        out.append(("year", ",".join(years)))
    elif low and high:
        return [("year", f"{low}-{high}")]
    if low:
        out.append(("year_min", low))
    if high:
        out.append(("year_max", high))
    return out


def generate_path(state: FilterState, root: str = DEFAULT_ROOT) -> Tuple[str, bool, bool]:
    """Path plus whether make and model were embedded in it."""
    path = "/" + root.strip("/")
    make_slugs = _slugs(state.make)
    model_slugs = _slugs(state.model)
    embed_make = len(state.make) == 1 and len(make_slugs) == 1
    embed_model = embed_make and len(state.model) == 1 and len(model_slugs) == 1
    if embed_make:
        path += "/" + make_slugs[0]
    if embed_model:
        path += "/" + model_slugs[0]
    return path, embed_make, embed_model


def generate_query(state: FilterState, *, skip: Iterable[str] = ()) -> List[Tuple[str, str]]:
    skipped = set(skip)
    params: List[Tuple[str, str]] = []
    for name in QUERY_ORDER:
        if name in skipped:
            continue
        if name == "year":
            params.extend(_year_params(state))
        elif name == "mileage":
            bucket = MileageBucket.lookup(state.mileage)
            token = bucket.slug if bucket else slugify(state.mileage)
            if token:
                params.append(("mileage", token))
        elif name in NUMERIC_PARAMS:
            value = _number(getattr(state, name))
            if value:
                params.append((name, value))
        else:
            values = _slugs(getattr(state, LIST_PARAMS[name]))
            if values:
                params.append((name, ",".join(values)))
    return params


def generate(state: FilterState, root: str = DEFAULT_ROOT) -> str:
    path, embed_make, embed_model = generate_path(state, root)
    skip = []
    if embed_make:
        skip.append("make")
    if embed_model:
        skip.append("model")
    params = generate_query(state, skip=skip)
    if not params:
        return path
    return path + "?" + "&".join(f"{k}={v}" for k, v in params)


def _query_pairs(query: QueryInput) -> List[Tuple[str, str]]:
    if not query:
        return []
    if isinstance(query, str):
        return parse_qsl(query.lstrip("?"), keep_blank_values=True)
    multi_items: Optional[Callable[[], Any]] = getattr(query, "multi_items", None)
    if multi_items is not None:
        return [(str(k), str(v)) for k, v in multi_items()]
    if isinstance(query, Mapping):
        pairs = []
        for key, value in query.items():
            if isinstance(value, (list, tuple)):
                value = ",".join(str(v) for v in value)
            pairs.append((str(key), "" if value is None else str(value)))
        return pairs
    return [(str(k), str(v)) for k, v in query]


def _display_values(raw: str) -> List[str]:
    values = [slugify(part) for part in raw.split(",")]
    return [unslugify(v) for v in values if v]


def _numeric(param: str, raw: str) -> str:
    value = _plain_number(raw)
    if to_float(value) is None:
        raise MalformedURLFragment(param, raw, "not a number")
    return value


def _decode_param(key: str, raw: str) -> Dict[str, Any]:
    """Fields set by one query parameter; raises MalformedURLFragment."""
    if key in LIST_PARAMS:
        return {LIST_PARAMS[key]: _display_values(raw)}
    if key in NUMERIC_PARAMS:
        return {key: _numeric(key, raw)} if raw.strip() else {}
    if key == "year":
        value = raw.strip()
        if "-" in value:
            low, _, high = value.partition("-")
            if not low.strip() and not high.strip():
                raise MalformedURLFragment(key, raw, "empty range")
            out: Dict[str, Any] = {}
            if low.strip():
                out["year_min"] = _numeric(key, low)
            if high.strip():
                out["year_max"] = _numeric(key, high)
            return out
        years = [part.strip() for part in value.split(",") if part.strip()]
        for part in years:
            _numeric(key, part)
        return {"year": years}
    if key == "mileage":
        if not raw.strip():
            return {}
        bucket = MileageBucket.lookup(raw)
        if bucket is None:
            raise MalformedURLFragment(key, raw, "unknown mileage bucket")
        return {"mileage": bucket.value}
    return {}


def parse(path: Optional[str], query: QueryInput = None, root: str = DEFAULT_ROOT) -> Dict[str, Any]:
    """Partial FilterState mapping decoded from a listing path and query.

    Only facets present in the URL appear in the result; merge it with
    ``FilterState.from_partial``.
    """
    partial: Dict[str, Any] = {}
    segments = [unquote(s) for s in (path or "").split("?", 1)[0].split("/") if s]
    if segments and segments[0].lower() == root.strip("/").lower():
        if len(segments) > 1 and slugify(segments[1]):
            partial["make"] = [unslugify(slugify(segments[1]))]
        if len(segments) > 2 and slugify(segments[2]):
            partial["model"] = [unslugify(slugify(segments[2]))]
    from_path = set(partial)

    for key, raw in _query_pairs(query):
        key = key.strip()
        if key in from_path:
            continue
        try:
            decoded = _decode_param(key, raw)
        except MalformedURLFragment as exc:
            logger.warning("dropping url fragment: %s", exc)
            if key == "year":
                for name in ("year", "year_min", "year_max"):
                    partial.pop(name, None)
            else:
                partial.pop(key, None)
            continue
        for name, value in decoded.items():
            if value in ("", []):
                partial.pop(name, None)
            else:
                partial[name] = value
    return partial


def parse_url(url: str, root: str = DEFAULT_ROOT) -> Dict[str, Any]:
    parts = urlsplit(url or "")
    return parse(parts.path, parts.query, root=root)


def canonical_state(path: Optional[str], query: QueryInput = None, root: str = DEFAULT_ROOT) -> FilterState:
    return FilterState.from_partial(parse(path, query, root=root))


__all__ = [
    "DEFAULT_ROOT",
    "LIST_PARAMS",
    "NUMERIC_PARAMS",
    "QUERY_ORDER",
    "canonical_state",
    "generate",
    "generate_path",
    "generate_query",
    "parse",
    "parse_url",
]
