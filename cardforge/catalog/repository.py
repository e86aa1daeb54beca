"""
Card Repository - Where the engine gets card definitions from.

The engine never reads a global catalog. It is handed a DefinitionCache
wrapping a CardRepository; the cache loads each definition at most once
per session and is consulted before any fetch.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable
import logging

from .cards import CardDefinition

logger = logging.getLogger(__name__)


class CardRepository(ABC):
    """
    Abstract source of card definitions.

    Implementations may be remote and therefore asynchronous.
    """

    @abstractmethod
    async def fetch(self, card_id: str) -> CardDefinition | None:
        """
        Resolve a definition id.

        Returns:
            The definition, or None if the id is unknown
        """
        pass

    async def fetch_many(self, card_ids: Iterable[str]) -> dict[str, CardDefinition]:
        """Resolve several ids, dropping unknown ones."""
        found: dict[str, CardDefinition] = {}
        for card_id in card_ids:
            definition = await self.fetch(card_id)
            if definition is not None:
                found[card_id] = definition
        return found


class InMemoryCardRepository(CardRepository):
    """Repository backed by a dict of definitions."""

    def __init__(self, definitions: Iterable[CardDefinition] = ()):
        self._definitions: dict[str, CardDefinition] = {}
        self.fetch_count = 0
        for definition in definitions:
            self.add(definition)

    def add(self, definition: CardDefinition) -> None:
        self._definitions[definition.card_id] = definition

    def all(self) -> list[CardDefinition]:
        return list(self._definitions.values())

    def __contains__(self, card_id: str) -> bool:
        return card_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    async def fetch(self, card_id: str) -> CardDefinition | None:
        self.fetch_count += 1
        return self._definitions.get(card_id)


@dataclass
class DefinitionCache:
    """
    Load-once view over a CardRepository.

    Every definition is fetched from the repository at most once for the
    lifetime of the cache. Unknown ids are not cached so a definition added
    to the repository later can still be found.
    """
    repository: CardRepository
    _definitions: dict[str, CardDefinition] = field(default_factory=dict)

    async def get(self, card_id: str) -> CardDefinition | None:
        """Get a definition, fetching it on a cache miss."""
        cached = self._definitions.get(card_id)
        if cached is not None:
            return cached

        definition = await self.repository.fetch(card_id)
        if definition is not None:
            logger.debug("Loaded card definition %s", card_id)
            self._definitions[card_id] = definition
        return definition

    def get_cached(self, card_id: str) -> CardDefinition | None:
        """Get a definition only if it is already loaded."""
        return self._definitions.get(card_id)

    async def preload(self, card_ids: Iterable[str]) -> int:
        """Load several definitions; returns how many are now cached."""
        for card_id in sorted(set(card_ids)):
            await self.get(card_id)
        return len(self._definitions)

    @property
    def size(self) -> int:
        return len(self._definitions)

    def clear(self) -> None:
        self._definitions.clear()
