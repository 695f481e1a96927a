from __future__ import annotations


class StorefrontError(Exception):
    pass


class MalformedURLFragment(StorefrontError, ValueError):
    """One path or query fragment could not be decoded."""

    def __init__(self, param: str, value: str, reason: str = "") -> None:
        self.param = param
        self.value = value
        self.reason = reason
        msg = f"malformed {param}={value!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class CatalogUnavailable(StorefrontError):
    """Transport failure talking to the catalog backend."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(message)


class InvalidRange(StorefrontError, ValueError):
    def __init__(self, field: str, low: str, high: str) -> None:
        self.field = field
        self.low = low
        self.high = high
        super().__init__(f"{field}: min {low} is greater than max {high}")


__all__ = ["StorefrontError", "MalformedURLFragment", "CatalogUnavailable", "InvalidRange"]
