"""
Cardforge - Turn-based Card Game Rules Engine

A deterministic engine for two-or-more player card duels.
The engine owns the game document and provides:
- Zone management (deck, hand, battlefield, graveyard)
- Combat resolution
- Triggered abilities and spells expressed in a typed effect DSL
- A turn state machine with health and energy invariants
"""

__version__ = "0.1.0"
