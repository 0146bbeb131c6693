"""
Mutable reference cells for ``CreateRef``/``GetRef``/``SetRef``/``DeleteRef``.
"""

import uuid
from collections.abc import Iterable

from tyeff.descriptors import Descriptor
from tyeff.errors import RefDeletedError


class ReferenceStore:
    """
    Mapping from ref-key to value descriptor.

    Unlike the result store, cells may be overwritten or removed. Reading a
    removed or unknown key raises ``RefDeletedError``.

    Example:
        refs = ReferenceStore()
        key = refs.create(Literal("a"))
        refs.set(key, Literal("b"))
        refs.delete(key)
        refs.get(key)  # raises RefDeletedError
    """

    def __init__(self) -> None:
        self._cells: dict[str, Descriptor] = {}

    def create(self, descriptor: Descriptor) -> str:
        key = str(uuid.uuid4())
        self._cells[key] = descriptor
        return key

    def get(self, key: str) -> Descriptor:
        try:
            return self._cells[key]
        except (KeyError, TypeError):
            raise RefDeletedError(key) from None

    def set(self, key: str, descriptor: Descriptor) -> None:
        """Store ``descriptor`` under ``key``. Overwrites if exists."""
        self._cells[key] = descriptor

    def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True if it existed."""
        return self._cells.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self._cells

    def keys(self) -> Iterable[str]:
        return list(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"ReferenceStore({len(self._cells)} cells)"
