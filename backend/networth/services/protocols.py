# backend/networth/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- Storage backends satisfy KeyValueStore without inheriting from it
- Test fakes work without explicit inheritance
- Callback signatures are documented in one place
"""

from typing import Any, Protocol


class KeyValueStore(Protocol):
    """
    Opaque persistence substrate.

    Values are JSON-compatible documents. No transactional guarantees are
    assumed beyond a single ``set`` replacing the stored value.
    """

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class ProgressCallback(Protocol):
    """Invoked once per ticker, in processing order, before its fetch."""

    def __call__(self, ticker: str, index: int, total: int) -> None:
        ...
