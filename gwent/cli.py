"""
Gwent CLI - Command-line interface for the compiler and engine.

Usage:
    gwent compile <card_file>                 Compile a card file
    gwent play <card_file> <card> [--seed N] [--hand-size N]
                                              Play a card in a sandbox game

Exit status: 0 on success, 1 when the file has diagnostics (or the play
fails), 2 when the file cannot be read.
"""

import argparse
import logging
import sys

from . import config

LOG_FORMAT = "%(name)s - %(levelname)s - %(message)s"


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Gwent - Card-script compiler and effect engine",
        prog="gwent",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log compiler progress")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Compile command
    compile_parser = subparsers.add_parser("compile", help="Compile a card file")
    compile_parser.add_argument("card_file", nargs="?", default=config.GWENT_CARD_FILE, help="Path to card file")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play one card in a sandbox game")
    play_parser.add_argument("card_file", help="Path to card file")
    play_parser.add_argument("card", help="Name of the card to play")
    play_parser.add_argument("--seed", type=int, default=None, help="Seed for shuffling")
    play_parser.add_argument("--hand-size", type=int, default=5, help="Cards dealt to each hand")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.GWENT_LOG_LEVEL,
        format=LOG_FORMAT,
    )

    if args.command == "compile":
        cmd_compile(args)
    elif args.command == "play":
        cmd_play(args)
    else:
        parser.print_help()
        sys.exit(1)


def _compile_or_exit(path):
    from .compiler import CardCompiler, CardFileError

    if not path:
        print("Error: no card file given (pass one or set GWENT_CARD_FILE)")
        sys.exit(2)
    try:
        return CardCompiler().compile(path)
    except CardFileError as e:
        print(f"Error: {e}")
        sys.exit(2)


def cmd_compile(args):
    """Compile a card file and report diagnostics."""
    from .compiler import CompilationStatus

    result = _compile_or_exit(args.card_file)

    print(result.message)
    if result.cards:
        print(f"\nCards: {len(result.cards)}")
        for card in result.cards:
            ranges = f" [{card.range_text}]" if card.ranges else ""
            print(f"  - {card.name} ({card.card_type.value}, {card.faction.value}, power {card.power}){ranges}")

    if result.status != CompilationStatus.SUCCESS:
        sys.exit(1)


def cmd_play(args):
    """Compile, deal a sandbox game and play the named card for player 1."""
    from .engine_core import Card, EffectExecutor, GameState

    result = _compile_or_exit(args.card_file)
    if result.diagnostics:
        print(result.message)

    definition = result.card(args.card)
    if definition is None:
        print(f"Error: no compiled card named '{args.card}'")
        sys.exit(1)

    game = GameState.sandbox(result.cards, seed=args.seed, hand_size=args.hand_size)
    card = Card.from_definition(definition, game.trigger_player)
    game.field(game.trigger_player).push(card)

    print(f"Playing {definition.name} for {game.trigger_player}")
    failed = False
    for outcome in EffectExecutor().execute_card(card, game):
        if outcome.success:
            print(f"  {outcome.effect_name}: ok")
        else:
            failed = True
            for line in outcome.messages:
                print(f"  {line}")

    print("\nZones:")
    for player, sizes in game.zone_sizes().items():
        summary = ", ".join(f"{zone} {count}" for zone, count in sizes.items())
        print(f"  {player}: {summary}")

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
