"""
Mutations - The primitive, synchronous changes to a game document.

Every state change in the engine bottoms out here. Each function works on a
GameSession in place, keeps the health/energy bounds and zone exclusivity,
and returns what happened so callers can react (e.g. destroy a unit whose
health reached 0). Missing players or instances are not errors: the
function reports that nothing changed.
"""

from __future__ import annotations
import logging

from .state import CardInstance, GameSession, GameStatus, LogAction, PlayerState

logger = logging.getLogger(__name__)


# =============================================================================
# Players
# =============================================================================

def deal_damage_to_player(state: GameSession, player_id: str, amount: int) -> bool:
    """
    Damage a player, floored at 0 health.

    A player reaching 0 ends the game immediately.
    """
    player = state.get_player(player_id)
    if player is None or amount <= 0:
        return False

    player.health = max(0, player.health - amount)
    state.append_log(
        player_id,
        LogAction.TAKE_DAMAGE,
        f"Took {amount} damage",
        amount=amount,
        target_id=player_id,
    )
    if player.health == 0:
        mark_defeated(state, player)
    return True


def mark_defeated(state: GameSession, player: PlayerState) -> bool:
    """
    Finish the game because a player was defeated.

    Only the first call has an effect, so the terminal entry is unique.
    """
    if state.status == GameStatus.FINISHED:
        return False
    state.status = GameStatus.FINISHED
    state.append_log(
        player.player_id,
        LogAction.GAME_END,
        "Player defeated",
        target_id=player.player_id,
    )
    logger.info("Game %s finished: %s defeated", state.game_id, player.player_id)
    return True


def heal_player(state: GameSession, player_id: str, amount: int) -> int:
    """Heal a player up to max health; returns the health restored."""
    player = state.get_player(player_id)
    if player is None or amount <= 0:
        return 0

    before = player.health
    player.health = min(player.max_health, player.health + amount)
    state.append_log(
        player_id,
        LogAction.HEAL,
        f"Healed for {amount} health",
        amount=amount,
        target_id=player_id,
    )
    return player.health - before


def gain_energy(state: GameSession, player_id: str, amount: int) -> int:
    """Give a player energy up to max energy; returns the energy gained."""
    player = state.get_player(player_id)
    if player is None or amount <= 0:
        return 0

    before = player.energy
    player.energy = min(player.max_energy, player.energy + amount)
    state.append_log(
        player_id,
        LogAction.GAIN_ENERGY,
        f"Gained {amount} energy",
        amount=amount,
    )
    return player.energy - before


def spend_energy(player: PlayerState, amount: int) -> bool:
    """Pay a cost; fails without change if the player cannot afford it."""
    if amount < 0 or player.energy < amount:
        return False
    player.energy -= amount
    return True


def restore_energy(player: PlayerState) -> None:
    player.energy = player.max_energy


def increase_max_energy(state: GameSession, increment: int, cap: int) -> None:
    """Grow every player's max energy, never past the cap."""
    for player in state.players:
        player.max_energy = max(player.max_energy, min(cap, player.max_energy + increment))


# =============================================================================
# Cards and zones
# =============================================================================

def draw_card(state: GameSession, player_id: str, log: bool = True) -> str | None:
    """
    Move the top card of the shared deck into a player's hand.

    Returns:
        The drawn instance id, or None if the deck is empty
    """
    player = state.get_player(player_id)
    if player is None:
        return None

    instance_id = state.deck.take_top()
    if instance_id is None:
        logger.debug("Deck empty, %s draws nothing", player_id)
        return None

    player.hand.add(instance_id)
    if log:
        state.append_log(player_id, LogAction.DRAW_CARD, "Drew a card")
    return instance_id


def place_on_battlefield(player: PlayerState, instance: CardInstance) -> None:
    player.battlefield.append(instance)


def damage_creature(
    state: GameSession, player_id: str, instance_id: str, amount: int
) -> int | None:
    """
    Subtract health from a unit, floored at 0.

    Does not destroy the unit; callers check the returned health.

    Returns:
        The unit's health afterwards, or None if it is not on the battlefield
    """
    player = state.get_player(player_id)
    instance = player.get_instance(instance_id) if player else None
    if instance is None:
        return None
    if amount > 0:
        instance.current_health = max(0, instance.current_health - amount)
    return instance.current_health


def deal_damage_to_creature(
    state: GameSession, player_id: str, instance_id: str, amount: int
) -> bool:
    """Damage a unit and destroy it if its health reaches 0."""
    remaining = damage_creature(state, player_id, instance_id, amount)
    if remaining is None:
        return False
    if remaining == 0:
        destroy_creature(state, player_id, instance_id)
    return True


def heal_creature(
    state: GameSession,
    player_id: str,
    instance_id: str,
    amount: int,
    max_health: int | None = None,
) -> int:
    """Heal a unit, clamped to max_health when given; returns health restored."""
    player = state.get_player(player_id)
    instance = player.get_instance(instance_id) if player else None
    if instance is None or amount <= 0:
        return 0

    before = instance.current_health
    healed = instance.current_health + amount
    if max_health is not None:
        healed = min(max(max_health, before), healed)
    instance.current_health = healed
    return instance.current_health - before


def destroy_creature(state: GameSession, player_id: str, instance_id: str) -> bool:
    """Remove a unit from its owner's battlefield and put it in the graveyard."""
    player = state.get_player(player_id)
    if player is None:
        return False
    instance = player.remove_instance(instance_id)
    if instance is None:
        return False
    state.graveyard.add(instance.instance_id)
    state.append_log(
        player_id,
        LogAction.DESTROY,
        "Unit destroyed",
        target_id=instance_id,
    )
    return True


def sap_creature(player: PlayerState, instance_id: str) -> bool:
    """Mark a creature as having acted; fails if missing or already sapped."""
    instance = player.get_instance(instance_id)
    if instance is None or instance.sapped:
        return False
    instance.sapped = True
    return True


def refresh_creatures(player: PlayerState) -> None:
    """Un-sap every unit a player controls."""
    for instance in player.battlefield:
        instance.sapped = False


# =============================================================================
# Turn order
# =============================================================================

def advance_to_next_player(state: GameSession) -> bool:
    """
    Pass the turn to the next seat.

    Returns:
        True if the seat order wrapped back to the first player
    """
    state.current_player_index = (state.current_player_index + 1) % state.num_players
    wrapped = state.current_player_index == 0
    if wrapped:
        state.turn += 1
    return wrapped
