"""Schema cache abstraction keyed by program id.

Entries are write-once: the first schema stored for a program is kept for
the lifetime of the cache, with no invalidation. An IDL upgraded on chain
after caching is not picked up.
"""

import threading
from typing import Dict, Optional, Protocol

from anchorlens.kernel.idl import SchemaIndex


class SchemaCache(Protocol):
    def get(self, program_id: str) -> Optional[SchemaIndex]:
        ...

    def put(self, program_id: str, schema: SchemaIndex) -> SchemaIndex:
        """Store ``schema`` unless an entry exists; return the stored entry."""
        ...


class InMemorySchemaCache:
    """Dict-backed cache for a single logical caller."""

    def __init__(self):
        self._entries: Dict[str, SchemaIndex] = {}

    def get(self, program_id: str) -> Optional[SchemaIndex]:
        return self._entries.get(program_id)

    def put(self, program_id: str, schema: SchemaIndex) -> SchemaIndex:
        return self._entries.setdefault(program_id, schema)

    def __contains__(self, program_id: str) -> bool:
        return program_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class LockedSchemaCache(InMemorySchemaCache):
    """Same write-once semantics, guarded by a lock for multi-threaded callers."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()

    def get(self, program_id: str) -> Optional[SchemaIndex]:
        with self._lock:
            return super().get(program_id)

    def put(self, program_id: str, schema: SchemaIndex) -> SchemaIndex:
        with self._lock:
            return super().put(program_id, schema)

    def __contains__(self, program_id: str) -> bool:
        with self._lock:
            return super().__contains__(program_id)

    def __len__(self) -> int:
        with self._lock:
            return super().__len__()
