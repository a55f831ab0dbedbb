"""
GiftSwap CLI - Command-line interface for the engine.

Usage:
    giftswap serve [--host HOST] [--port PORT]     Run the API server
    giftswap simulate [--players N] [--gifts N]    Play a random game in memory
"""

import argparse
import sys

from .config import get_settings
from .logging_setup import configure_logging


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="GiftSwap - White Elephant gift exchange engine",
        prog="giftswap",
    )
    parser.add_argument("--log-level", help="Override GIFTSWAP_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Play a random game in memory")
    sim_parser.add_argument("--players", type=int, default=4, help="Number of players")
    sim_parser.add_argument("--gifts", type=int, help="Number of gifts (default: one per player)")
    sim_parser.add_argument("--seed", type=int, help="Random seed")
    sim_parser.add_argument("--max-steals", type=int, default=2, help="Steals before a gift locks")
    sim_parser.add_argument("--allow-stealback", action="store_true",
                            help="Allow immediately stealing a gift back")
    sim_parser.add_argument("--keep-order", action="store_true",
                            help="Play in join order instead of shuffling")
    sim_parser.add_argument("--csv", action="store_true", help="Print the results as CSV")

    args = parser.parse_args(argv)

    configure_logging(level=args.log_level)

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "simulate":
        return cmd_simulate(args)
    else:
        parser.print_help()
        return 1


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "giftswap.api.app:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def cmd_simulate(args):
    """Play one random game and print what happened."""
    from .engine_core.errors import GiftSwapError
    from .report import build_results, describe_history, to_csv
    from .simulate import play_random_game

    if args.players < 2:
        print("Error: need at least 2 players", file=sys.stderr)
        return 1
    gifts = args.players if args.gifts is None else args.gifts

    try:
        run = play_random_game(
            num_players=args.players,
            num_gifts=gifts,
            seed=args.seed,
            config={
                "max_steals_per_gift": args.max_steals,
                "allow_immediate_stealback": args.allow_stealback,
                "randomize_order": not args.keep_order,
            },
        )
    except GiftSwapError as e:
        print(f"Error: {e.message} ({e.error_code})", file=sys.stderr)
        return 1

    if args.csv:
        sys.stdout.write(to_csv(run.state))
        return 0

    state = run.state
    print(f"Session {state.session_code}: {state.num_players} players, {len(state.gifts)} gifts")
    print("\nPlay by play:")
    for line in describe_history(state):
        print(f"  {line}")
    print("\nResults:")
    for row in build_results(state):
        print(
            f"  {row.rank}. {row.player_name}: {row.gift_name} (gift stolen {row.steal_count}x; "
            f"stole {row.steals_made}, robbed {row.times_stolen_from})"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
