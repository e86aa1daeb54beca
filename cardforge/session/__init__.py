"""
Session Module - Game documents and the managers around them.

A game is one document in the DocumentStore:
- Created WAITING by the GameManager
- Changed only through its GameEngine, one commit per action
- Removed when the game is ended

Documents live in memory only; the store stands in for the
replicated document layer.
"""

from .store import DocHandle, DocumentStore
from .manager import GameManager

__all__ = [
    "DocHandle",
    "DocumentStore",
    "GameManager",
]
