"""
Game Engine - The player-facing façade over one game document.

The engine owns the document handle and a DefinitionCache, and exposes
every player action as an async method returning a success boolean.

Each call is one transaction:
1. Take a working copy of the document
2. Validate preconditions (status, turn, zone, ownership, energy)
3. Run the action on the working copy
4. Commit the working copy with a single handle.update()

A failed precondition commits nothing. Any other exception discards the
working copy and records one "Failed to ..." entry in its own change.
The public methods never raise.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar
import logging
import random

from ..catalog.cards import CardDefinition, CardKind, DeckList, TriggerEvent
from ..catalog.repository import DefinitionCache
from ..config import RulesConfig
from ..errors import DocumentNotFoundError, EngineValidationError
from . import mutations
from .combat import CombatResolver
from .effect_api import SpellEffectAPI, TriggerContext
from .interpreter import EffectInterpreter
from .operations import Operation, OperationType, apply_operations
from .state import CardInstance, GameSession, GameStatus, LogAction, PlayerState, Zone
from .targeting import TargetSelectorFn
from .triggers import TriggerDispatcher, heal_limits
from .turns import TurnController

if TYPE_CHECKING:
    from ..session.store import DocHandle, DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PlayHandler = Callable[..., Awaitable[bool]]


class GameEngine:
    """
    Runs player actions against one game.

    Usage:
        engine = GameEngine(store.find(game_id), DefinitionCache(repo), store=store)
        await engine.start_game_with_deck("standard")
        await engine.play_card("p1", "inst_3_0a1b2c3d")
        await engine.end_player_turn("p1")
    """

    def __init__(
        self,
        handle: DocHandle[GameSession],
        definitions: DefinitionCache,
        interpreter: EffectInterpreter | None = None,
        rules: RulesConfig | None = None,
        store: DocumentStore | None = None,
    ):
        self.handle = handle
        self.definitions = definitions
        self.interpreter = interpreter or EffectInterpreter()
        self.rules = rules or RulesConfig()
        self.store = store

        self.triggers = TriggerDispatcher(definitions, self.interpreter)
        self.combat = CombatResolver(definitions, self.triggers)
        self.turns = TurnController(definitions, self.triggers, self.rules)

        self.last_error: str | None = None
        self.last_error_code: str | None = None

    @property
    def game_id(self) -> str:
        return self.handle.doc_id

    def snapshot(self) -> GameSession:
        """A read-only copy of the current document."""
        return self.handle.doc()

    # =========================================================================
    # Playing cards
    # =========================================================================

    async def play_card(
        self,
        player_id: str,
        instance_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """
        Play a card from hand.

        Creatures and artifacts go to the battlefield; spells resolve
        and go to the graveyard.
        """
        async def body(state: GameSession) -> bool:
            return await self._play(state, player_id, instance_id, target_selector, spells_only=False)

        return await self._transact("play card", player_id, body, default=False)

    async def cast_spell(
        self,
        player_id: str,
        instance_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """Play a spell from hand; any other kind of card is rejected."""
        async def body(state: GameSession) -> bool:
            return await self._play(state, player_id, instance_id, target_selector, spells_only=True)

        return await self._transact("cast spell", player_id, body, default=False)

    async def _play(
        self,
        state: GameSession,
        player_id: str,
        instance_id: str,
        target_selector: TargetSelectorFn | None,
        spells_only: bool,
    ) -> bool:
        player = self._require_turn(state, player_id)
        if not player.hand.contains(instance_id):
            raise EngineValidationError("Card is not in your hand", "CARD_NOT_IN_HAND")

        definition = await self._definition(state, instance_id)
        if spells_only and not definition.is_spell:
            raise EngineValidationError(f"{definition.name} is not a spell", "NOT_A_SPELL")
        if player.energy < definition.cost:
            raise EngineValidationError(
                f"Not enough energy: {definition.name} costs {definition.cost}, "
                f"you have {player.energy}",
                "INSUFFICIENT_ENERGY",
            )

        handler = self._play_handlers()[definition.kind]
        return await handler(state, player, instance_id, definition, target_selector)

    def _play_handlers(self) -> dict[CardKind, PlayHandler]:
        return {
            CardKind.CREATURE: self._play_permanent,
            CardKind.ARTIFACT: self._play_permanent,
            CardKind.SPELL: self._resolve_spell,
        }

    def _pay(self, player: PlayerState, instance_id: str, definition: CardDefinition) -> None:
        player.hand.remove(instance_id)
        if not mutations.spend_energy(player, definition.cost):
            raise EngineValidationError("Not enough energy", "INSUFFICIENT_ENERGY")

    async def _play_permanent(
        self,
        state: GameSession,
        player: PlayerState,
        instance_id: str,
        definition: CardDefinition,
        target_selector: TargetSelectorFn | None,
    ) -> bool:
        """Put a creature or artifact onto the battlefield."""
        self._pay(player, instance_id, definition)
        instance = CardInstance(
            instance_id=instance_id,
            definition_id=definition.card_id,
            kind=definition.kind,
            current_health=definition.entry_health,
            sapped=definition.is_creature,
        )
        mutations.place_on_battlefield(player, instance)
        state.append_log(
            player.player_id,
            LogAction.PLAY_CARD,
            f"Played {definition.name}",
            amount=definition.cost,
            target_id=instance_id,
        )
        logger.info("%s played %s (%s)", player.player_id, definition.name, instance_id)

        for opponent in state.opponents_of(player.player_id):
            if state.is_finished:
                break
            await self.triggers.execute_triggered_abilities(
                state, TriggerEvent.PLAY_CARD, opponent.player_id, target_selector
            )
        return True

    async def _resolve_spell(
        self,
        state: GameSession,
        player: PlayerState,
        instance_id: str,
        definition: CardDefinition,
        target_selector: TargetSelectorFn | None,
    ) -> bool:
        """
        Resolve a spell.

        The card and its energy are spent even if the effect fails; only
        the effect's operations are discarded.
        """
        self._pay(player, instance_id, definition)
        state.graveyard.add(instance_id)

        for each in state.players:
            if state.is_finished:
                return True
            await self.triggers.execute_triggered_abilities(
                state, TriggerEvent.PLAY_CARD, each.player_id, target_selector
            )
        if state.is_finished:
            return True

        operations: list[Operation] = []
        if definition.spell_effect is not None:
            api = SpellEffectAPI(state.clone(), player.player_id, target_selector)
            result = await self.interpreter.execute(definition.spell_effect, api, definition.name)
            if not result.success:
                self.last_error = result.error
                self.last_error_code = "EFFECT_FAILED"
                state.append_log(
                    player.player_id,
                    LogAction.EFFECT_FAILED,
                    f"{definition.name} failed",
                    target_id=instance_id,
                )
                return False
            operations = result.operations

        await self._fire_take_damage(state, operations, target_selector)
        if not state.is_finished:
            limits = await heal_limits(self.definitions, state, operations)
            apply_operations(state, operations, limits)

        state.append_log(
            player.player_id,
            LogAction.PLAY_CARD,
            f"Cast {definition.name}",
            amount=definition.cost,
            target_id=instance_id,
        )
        logger.info("%s cast %s", player.player_id, definition.name)
        return True

    async def _fire_take_damage(
        self,
        state: GameSession,
        operations: list[Operation],
        target_selector: TargetSelectorFn | None,
    ) -> None:
        """take_damage triggers for every unit a spell is about to damage."""
        for operation in operations:
            if state.is_finished:
                return
            if operation.op_type != OperationType.DAMAGE_CREATURE or operation.amount <= 0:
                continue
            found = state.find_instance(operation.instance_id)
            if found is None:
                continue
            owner, instance = found
            await self.triggers.execute_triggered_abilities_for_creature(
                state,
                TriggerEvent.TAKE_DAMAGE,
                owner.player_id,
                instance.instance_id,
                TriggerContext(damage_amount=operation.amount),
                target_selector,
            )

    # =========================================================================
    # Combat
    # =========================================================================

    async def attack_player_with_creature(
        self,
        player_id: str,
        instance_id: str,
        target_player_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """Attack a player with one of your unsapped creatures."""
        async def body(state: GameSession) -> bool:
            self._require_turn(state, player_id)
            await self.combat.attack_player(
                state, player_id, instance_id, target_player_id, target_selector
            )
            return True

        return await self._transact("attack player", player_id, body, default=False)

    async def attack_creature_with_creature(
        self,
        player_id: str,
        instance_id: str,
        target_player_id: str,
        target_instance_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """Attack a creature or artifact with one of your unsapped creatures."""
        async def body(state: GameSession) -> bool:
            self._require_turn(state, player_id)
            await self.combat.attack_creature(
                state,
                player_id,
                instance_id,
                target_player_id,
                target_instance_id,
                target_selector,
            )
            return True

        return await self._transact("attack creature", player_id, body, default=False)

    # =========================================================================
    # Turns
    # =========================================================================

    async def end_player_turn(
        self,
        player_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """End the current player's turn and start the next player's."""
        async def body(state: GameSession) -> bool:
            self._require_turn(state, player_id)
            await self.turns.end_turn(state, player_id, target_selector)
            return True

        return await self._transact("end turn", player_id, body, default=False)

    async def heal_creatures(self, player_id: str) -> bool:
        """Heal a player's damaged creatures by the per-turn amount."""
        async def body(state: GameSession) -> bool:
            self._require_player(state, player_id)
            await self.turns.heal_creatures(state, player_id)
            return True

        return await self._transact("heal creatures", player_id, body, default=False)

    # =========================================================================
    # Triggers
    # =========================================================================

    async def execute_triggered_abilities(
        self,
        event: TriggerEvent,
        player_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """Fire an event across a player's battlefield."""
        async def body(state: GameSession) -> bool:
            self._require_player(state, player_id)
            await self.triggers.execute_triggered_abilities(state, event, player_id, target_selector)
            return True

        return await self._transact("execute triggered abilities", player_id, body, default=False)

    async def execute_triggered_abilities_for_creature(
        self,
        event: TriggerEvent,
        player_id: str,
        instance_id: str,
        context: TriggerContext | None = None,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """Fire an event for a single battlefield instance."""
        async def body(state: GameSession) -> bool:
            player = self._require_player(state, player_id)
            if player.get_instance(instance_id) is None:
                raise EngineValidationError("Card not found on battlefield", "CARD_NOT_FOUND")
            await self.triggers.execute_triggered_abilities_for_creature(
                state, event, player_id, instance_id, context, target_selector
            )
            return True

        return await self._transact("execute triggered abilities", player_id, body, default=False)

    # =========================================================================
    # Game lifecycle
    # =========================================================================

    async def start_game_with_deck(self, deck_id: str) -> bool:
        """
        Start a waiting game with a stored deck.

        The deck is expanded into unique instances, shuffled with the
        game's seed, and dealt: every player gets the opening hand and the
        first player draws the bonus card(s).
        """
        async def body(state: GameSession) -> bool:
            if state.status != GameStatus.WAITING:
                raise EngineValidationError("Game has already started", "GAME_ALREADY_STARTED")
            if state.num_players < 2:
                raise EngineValidationError(
                    "At least two players are required", "NOT_ENOUGH_PLAYERS"
                )

            deck = self._load_deck(deck_id)
            if deck.size == 0:
                raise EngineValidationError(f"Deck {deck_id} is empty", "EMPTY_DECK")
            for card_id in sorted(set(deck.card_ids())):
                if await self.definitions.get(card_id) is None:
                    raise EngineValidationError(
                        f"Unknown card in deck: {card_id}", "DEFINITION_NOT_FOUND"
                    )

            self._deal(state, deck)
            logger.info(
                "Game %s started with deck %s (%d cards, %d players)",
                state.game_id, deck_id, deck.size, state.num_players,
            )
            return True

        first = self.handle.doc().players
        player_id = first[0].player_id if first else ""
        return await self._transact("start game", player_id, body, default=False)

    def _deal(self, state: GameSession, deck: DeckList) -> None:
        rng = random.Random(state.random_seed)

        instance_ids: list[str] = []
        state.instance_definitions = {}
        for number, card_id in enumerate(deck.card_ids(), start=1):
            instance_id = f"inst_{number}_{rng.getrandbits(32):08x}"
            state.instance_definitions[instance_id] = card_id
            instance_ids.append(instance_id)
        rng.shuffle(instance_ids)

        state.deck = Zone(name="deck", cards=instance_ids)
        state.graveyard = Zone(name="graveyard")
        for player in state.players:
            player.health = player.max_health = self.rules.starting_health
            player.energy = player.max_energy = self.rules.starting_energy
            player.hand = Zone(name="hand")
            player.battlefield = []

        for _ in range(self.rules.opening_hand_size):
            for player in state.players:
                mutations.draw_card(state, player.player_id, log=False)
        first = state.players[0]
        for _ in range(self.rules.first_player_bonus_draw):
            mutations.draw_card(state, first.player_id, log=False)

        state.status = GameStatus.PLAYING
        state.current_player_index = 0
        state.turn = 1
        state.selected_deck_id = deck.deck_id
        state.append_log(
            first.player_id,
            LogAction.GAME_START,
            f"Game started with {deck.name}",
            amount=deck.size,
        )

    async def create_rematch_game(self) -> str | None:
        """
        Create a fresh waiting game with the same players and deck.

        Returns:
            The new game's id, or None if no rematch could be created.
            Asking again returns the same rematch.
        """
        async def body(state: GameSession) -> str:
            store = self._require_store()
            if state.status != GameStatus.FINISHED:
                raise EngineValidationError("Game is not finished", "GAME_NOT_FINISHED")
            if state.rematch_game_id and state.rematch_game_id in store:
                return state.rematch_game_id

            rematch = GameSession(
                game_id=store.new_id("game"),
                players=[PlayerState(player_id=p.player_id, name=p.name) for p in state.players],
                selected_deck_id=state.selected_deck_id,
                random_seed=state.random_seed + 1,
                metadata={"rematch_of": state.game_id},
            )
            store.create(rematch, doc_id=rematch.game_id)
            state.rematch_game_id = rematch.game_id
            logger.info("Created rematch %s for game %s", rematch.game_id, state.game_id)
            return rematch.game_id

        return await self._transact("create rematch", "", body, default=None)

    # =========================================================================
    # Transactions and validation
    # =========================================================================

    async def _transact(
        self,
        action: str,
        player_id: str,
        body: Callable[[GameSession], Awaitable[T]],
        default: Any,
    ) -> T | Any:
        """
        Run body against a working copy and commit it once.

        Returns:
            What body returned, or default if nothing was committed
        """
        self.last_error = None
        self.last_error_code = None
        working = self.handle.doc()

        try:
            outcome = await body(working)
        except EngineValidationError as e:
            self.last_error = str(e)
            self.last_error_code = e.error_code
            logger.info("Rejected %s for %s: %s", action, player_id or "-", e)
            return default
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            self.last_error_code = "INTERNAL_ERROR"
            logger.warning("Rolled back %s in game %s", action, self.game_id, exc_info=True)
            self._record_failure(player_id, f"Failed to {action}: {self.last_error}")
            return default

        self.handle.update(lambda _: working)
        return outcome

    def _record_failure(self, player_id: str, message: str) -> None:
        self.handle.change(
            lambda doc: doc.append_log(player_id, LogAction.ACTION_FAILED, message)
        )

    def _require_playing(self, state: GameSession) -> None:
        if state.status == GameStatus.WAITING:
            raise EngineValidationError("Game has not started", "GAME_NOT_STARTED")
        if state.status == GameStatus.FINISHED:
            raise EngineValidationError("Game is over", "GAME_FINISHED")

    def _require_player(self, state: GameSession, player_id: str) -> PlayerState:
        self._require_playing(state)
        player = state.get_player(player_id)
        if player is None:
            raise EngineValidationError(f"Player {player_id} not found", "PLAYER_NOT_FOUND")
        return player

    def _require_turn(self, state: GameSession, player_id: str) -> PlayerState:
        player = self._require_player(state, player_id)
        if state.current_player.player_id != player_id:
            raise EngineValidationError(f"Not {player_id}'s turn", "NOT_YOUR_TURN")
        return player

    def _require_store(self) -> DocumentStore:
        if self.store is None:
            raise EngineValidationError("Engine has no document store", "NO_STORE")
        return self.store

    def _load_deck(self, deck_id: str) -> DeckList:
        store = self._require_store()
        try:
            deck = store.find(deck_id).doc()
        except DocumentNotFoundError:
            raise EngineValidationError(f"Deck {deck_id} not found", "DECK_NOT_FOUND")
        if not isinstance(deck, DeckList):
            raise EngineValidationError(f"Document {deck_id} is not a deck", "DECK_NOT_FOUND")
        return deck

    async def _definition(self, state: GameSession, instance_id: str) -> CardDefinition:
        definition_id = state.definition_id_for(instance_id)
        definition = await self.definitions.get(definition_id) if definition_id else None
        if definition is None:
            raise EngineValidationError(
                f"No card definition for {instance_id}", "DEFINITION_NOT_FOUND"
            )
        return definition
