"""
In-memory stores used during one tyeff run.

Two tables back the stateful effects:

- ReferenceStore: mutable cells created by ``CreateRef`` and updated by
  ``SetRef``/``DeleteRef``. Entries may be overwritten or removed.
- ResultStore: append-only outputs of expression-producing effects. Every key
  is unique for the run and stays valid until the run ends.

Keys are opaque uuid4 strings and are never chosen by the program.

Example usage:
    from tyeff.storage import ReferenceStore
    from tyeff.descriptors import Literal

    refs = ReferenceStore()
    key = refs.create(Literal(1))
    refs.get(key)  # Literal(value=1)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from tyeff.descriptors import Descriptor


@runtime_checkable
class DescriptorStore(Protocol):
    """
    Protocol shared by both stores.

    Methods:
        create: Store a descriptor under a fresh key and return the key.
        get: Retrieve the descriptor stored under key.
        keys: Iterate over all keys in insertion order.
    """

    def create(self, descriptor: Descriptor) -> str:
        """Store ``descriptor`` under a fresh key."""
        ...

    def get(self, key: str) -> Descriptor:
        """Return the descriptor stored under ``key``."""
        ...

    def keys(self) -> Iterable[str]:
        """Iterate over all keys."""
        ...


from tyeff.storage.refs import ReferenceStore
from tyeff.storage.results import ResultEntry, ResultStore

__all__ = [
    "DescriptorStore",
    "ReferenceStore",
    "ResultEntry",
    "ResultStore",
]
