"""
Catalog loader - Reads card catalogs and decks from JSON files.

File format:
    {
        "cards": [ {CardDefinition.to_dict()}, ... ],
        "decks": [ {"deck_id": ..., "name": ..., "cards": [{"card_id": ..., "quantity": ...}]} ]
    }
"""

from __future__ import annotations
from pathlib import Path
from typing import Any
import json

from .cards import CardDefinition, DeckEntry, DeckList


def parse_cards(data: dict[str, Any]) -> list[CardDefinition]:
    """Parse card definitions from a decoded catalog document."""
    cards = []
    for index, item in enumerate(data.get("cards", [])):
        try:
            cards.append(CardDefinition.from_dict(item))
        except (KeyError, ValueError, TypeError) as e:
            raise ValueError(f"Invalid card at index {index}: {e}") from e
    return cards


def parse_decks(data: dict[str, Any]) -> list[DeckList]:
    """Parse deck lists from a decoded catalog document."""
    decks = []
    for item in data.get("decks", []):
        decks.append(
            DeckList(
                deck_id=item["deck_id"],
                name=item.get("name", item["deck_id"]),
                entries=[
                    DeckEntry(card_id=entry["card_id"], quantity=int(entry.get("quantity", 1)))
                    for entry in item.get("cards", [])
                ],
            )
        )
    return decks


def load_catalog(path: str | Path) -> tuple[list[CardDefinition], list[DeckList]]:
    """
    Load a JSON catalog file.

    Returns:
        (cards, decks)
    """
    data = json.loads(Path(path).read_text())
    return parse_cards(data), parse_decks(data)


def dump_catalog(cards: list[CardDefinition], decks: list[DeckList] | None = None) -> str:
    """Serialize cards and decks to the catalog JSON format."""
    return json.dumps(
        {
            "cards": [card.to_dict() for card in cards],
            "decks": [
                {
                    "deck_id": deck.deck_id,
                    "name": deck.name,
                    "cards": [
                        {"card_id": e.card_id, "quantity": e.quantity} for e in deck.entries
                    ],
                }
                for deck in decks or []
            ],
        },
        indent=2,
    )
