"""
Document Store - In-memory stand-in for the replicated document layer.

The engine only needs three primitives:
- find(id) -> handle
- handle.doc() -> snapshot (a deep copy; editing it changes nothing)
- handle.change(mutator) -> synchronous, all-or-nothing mutation

plus handle.update(fn) to replace a document with a working copy the
engine prepared, which is how one engine call becomes one commit.
Subscribers are notified after every commit.

PERSISTENCE RULES:
- Documents live in memory for the lifetime of the store
- A mutator that raises leaves the stored document untouched
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Callable, Generic, TypeVar
import logging
import uuid

from ..errors import DocumentNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class DocHandle(Generic[T]):
    """A handle on one stored document."""

    def __init__(self, doc_id: str, doc: T):
        self.doc_id = doc_id
        self._doc = doc
        self._subscribers: list[Callable[[T], None]] = []
        self.version = 0

    def doc(self) -> T:
        """Get a snapshot of the document."""
        return deepcopy(self._doc)

    def change(self, mutator: Callable[[T], R]) -> R:
        """
        Apply a mutation atomically.

        The mutator edits a private copy; the copy replaces the stored
        document only if the mutator returns normally.

        Returns:
            Whatever the mutator returned
        """
        working = deepcopy(self._doc)
        result = mutator(working)
        self._commit(working)
        return result

    def update(self, fn: Callable[[T], T]) -> T:
        """Replace the document with what fn returns for a copy of it."""
        replacement = fn(deepcopy(self._doc))
        self._commit(replacement)
        return self.doc()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Call back with a snapshot after every commit.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _commit(self, doc: T) -> None:
        self._doc = doc
        self.version += 1
        for callback in list(self._subscribers):
            try:
                callback(self.doc())
            except Exception:
                logger.exception("Subscriber of %s failed", self.doc_id)


class DocumentStore:
    """
    Keeps documents by id.

    Usage:
        store = DocumentStore()
        handle = store.create(GameSession(game_id="g1"), doc_id="g1")
        handle.change(lambda doc: doc.players.append(...))
        store.find("g1").doc()
    """

    def __init__(self):
        self._handles: dict[str, DocHandle[Any]] = {}

    @staticmethod
    def new_id(prefix: str = "doc") -> str:
        return f"{prefix}_{uuid.uuid4().hex[:12]}"

    def create(self, doc: T, doc_id: str | None = None) -> DocHandle[T]:
        """Store a new document; fails if the id is taken."""
        doc_id = doc_id or self.new_id()
        if doc_id in self._handles:
            raise ValueError(f"Document already exists: {doc_id}")
        handle = DocHandle(doc_id, deepcopy(doc))
        self._handles[doc_id] = handle
        return handle

    def find(self, doc_id: str) -> DocHandle[Any]:
        """Get the handle for a document id."""
        handle = self._handles.get(doc_id)
        if handle is None:
            raise DocumentNotFoundError(doc_id)
        return handle

    def delete(self, doc_id: str) -> bool:
        return self._handles.pop(doc_id, None) is not None

    def list_ids(self, prefix: str | None = None) -> list[str]:
        return [
            doc_id for doc_id in self._handles
            if prefix is None or doc_id.startswith(prefix)
        ]

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)
