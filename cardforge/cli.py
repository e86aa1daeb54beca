"""
Cardforge CLI - Command-line interface for the engine.

Usage:
    cardforge cards                      List the built-in card library
    cardforge validate <catalog.json>    Validate a JSON card catalog
    cardforge simulate                   Play a seeded game between simple bots
    cardforge serve                      Run the HTTP API
"""

import argparse
import asyncio
import logging
import sys

from .config import configure_logging

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Cardforge - Turn-based Card Game Rules Engine",
        prog="cardforge",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: CARDFORGE_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Cards command
    subparsers.add_parser("cards", help="List the built-in card library")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a card catalog")
    validate_parser.add_argument("catalog_file", help="Path to catalog JSON file")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play a game between simple bots")
    simulate_parser.add_argument("--seed", type=int, default=0, help="Shuffle seed")
    simulate_parser.add_argument("--turns", type=int, default=30, help="Maximum number of rounds")
    simulate_parser.add_argument("--players", type=int, default=2, help="Number of players")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "cards":
        cmd_cards(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command == "simulate":
        cmd_simulate(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_cards(args):
    """List the built-in card library."""
    from .catalog import build_standard_library

    for card in build_standard_library():
        stats = ""
        if card.is_creature:
            stats = f" {card.attack}/{card.health}"
        elif card.health is not None:
            stats = f" 0/{card.health}"
        print(f"{card.card_id}  [{card.cost}] {card.name} ({card.kind.value}{stats})")
        if card.description:
            print(f"      {card.description}")


def cmd_validate(args):
    """Validate a card catalog file."""
    from .catalog import load_catalog, validate_catalog, validate_deck

    try:
        cards, decks = load_catalog(args.catalog_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.catalog_file}")
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    result = validate_catalog(cards)
    errors = list(result.errors)
    warnings = list(result.warnings)
    known = {card.card_id for card in cards}
    for deck in decks:
        deck_result = validate_deck(deck, known)
        errors.extend(deck_result.errors)
        warnings.extend(deck_result.warnings)

    print(f"Cards: {len(cards)}")
    print(f"Decks: {len(decks)}")

    if warnings:
        print("\nWarnings:")
        for w in warnings:
            print(f"  - {w}")

    if errors:
        print("\nErrors:")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)

    print("\nCatalog is valid")


def cmd_simulate(args):
    """Play a seeded game between simple bots."""
    if args.players < 2:
        print("Error: at least two players are required")
        sys.exit(1)

    game = asyncio.run(simulate(args.seed, args.turns, args.players))

    print(f"Game {game.game_id}: {game.status.value} after {game.turn} round(s)")
    for player in game.players:
        print(
            f"  {player.player_id}: {player.health}/{player.max_health} health, "
            f"{len(player.battlefield)} unit(s), {player.hand.count} card(s) in hand"
        )
    print("\nLast log entries:")
    for entry in game.game_log[-10:]:
        print(f"  [{entry.player_id}] {entry.action.value}: {entry.description}")


async def simulate(seed: int, max_rounds: int, num_players: int):
    """
    Run a full game where every player plays greedily.

    Each turn a player plays every card it can afford, attacks with every
    ready creature, then ends its turn.

    Returns:
        The final game document
    """
    from .catalog import InMemoryCardRepository, build_standard_library
    from .engine_core.targeting import FirstLegalTargetSelector, get_valid_targets, selector_for_attack
    from .session import GameManager

    manager = GameManager(InMemoryCardRepository(build_standard_library()))
    deck = manager.ensure_standard_deck()
    player_ids = [f"p{n}" for n in range(1, num_players + 1)]
    game = manager.create_game(player_ids, deck_id=deck.deck_id, seed=seed)
    engine = manager.engine_for(game.game_id)
    selector = FirstLegalTargetSelector()

    if not await engine.start_game_with_deck(deck.deck_id):
        raise RuntimeError(f"Could not start game: {engine.last_error}")

    while True:
        state = engine.snapshot()
        if state.is_finished or state.turn > max_rounds:
            return state
        player_id = state.current_player.player_id

        for instance_id in list(state.current_player.hand.cards):
            definition = await engine.definitions.get(state.definition_id_for(instance_id))
            if definition is None or definition.cost > engine.snapshot().get_player(player_id).energy:
                continue
            await engine.play_card(player_id, instance_id, selector)
            if engine.snapshot().is_finished:
                return engine.snapshot()

        for creature in engine.snapshot().get_player(player_id).creatures:
            current = engine.snapshot()
            if current.is_finished:
                return current
            attacker = current.get_player(player_id).get_instance(creature.instance_id)
            if attacker is None or attacker.sapped:
                continue
            definition = await engine.definitions.get(attacker.definition_id)
            targets = get_valid_targets(
                selector_for_attack(definition, player_id), current, player_id
            )
            if not targets:
                continue
            target = targets[0]
            if target.is_player:
                await engine.attack_player_with_creature(
                    player_id, attacker.instance_id, target.player_id, selector
                )
            else:
                await engine.attack_creature_with_creature(
                    player_id, attacker.instance_id, target.player_id, target.instance_id, selector
                )

        if engine.snapshot().is_finished:
            return engine.snapshot()
        await engine.end_player_turn(player_id, selector)


def cmd_serve(args):
    """Run the HTTP API with uvicorn."""
    import uvicorn
    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
