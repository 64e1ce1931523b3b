# -*- coding: utf-8 -*-
from __future__ import annotations
import copy
import threading
from typing import Any, Dict, Optional, Protocol, runtime_checkable

Snapshot = Dict[str, Any]


@runtime_checkable
class DocumentStore(Protocol):
    def get(self) -> Optional[Snapshot]:
        ...

    def set(self, snapshot: Snapshot) -> None:
        ...


class InMemoryDocumentStore:
    """
    Single-slot store for the shared canvas snapshot.
    - set() replaces the whole document (last writer wins, no merge).
    - get()/set() copy on the way in and out so callers never share the stored dict.
    - Nothing survives a process restart.
    """

    def __init__(self) -> None:
        self._doc: Optional[Snapshot] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[Snapshot]:
        with self._lock:
            return copy.deepcopy(self._doc)

    def set(self, snapshot: Snapshot) -> None:
        doc = copy.deepcopy(snapshot)
        with self._lock:
            self._doc = doc

    def clear(self) -> None:
        with self._lock:
            self._doc = None


# Process-wide slot (enough for the demo; swap for a keyed store if needed)
_STORE = InMemoryDocumentStore()


def get_document_store() -> DocumentStore:
    return _STORE
