from __future__ import annotations

import re
from typing import Optional

_STRIP_RE = re.compile(r"[^\w\s-]", re.ASCII)
_SPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")


def slugify(text: Optional[str]) -> str:
    """Lowercase URL token for a display string ("SUV / Crossover" -> "suv-crossover")."""
    if not text:
        return ""
    value = _STRIP_RE.sub("", str(text).lower())
    value = _SPACE_RE.sub("-", value)
    value = _HYPHENS_RE.sub("-", value)
    return value.strip("-")


def unslugify(slug: Optional[str]) -> str:
    """Best-effort display string for a slug ("f-150" -> "F 150").

    Punctuation and irregular casing are not recovered; callers resolve the
    result against the catalog vocabulary before trusting it.
    """
    if not slug:
        return ""
    return " ".join(word[:1].upper() + word[1:] for word in str(slug).split("-"))


__all__ = ["slugify", "unslugify"]
