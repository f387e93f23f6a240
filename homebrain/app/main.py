"""
Homebrain - Main Entry Point

Main entry point for launching the command interpreter.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from homebrain.app.pipeline import (
    DEFAULT_SESSION_ID,
    CommandPipeline,
    PipelineResult,
    PipelineStatus,
    create_pipeline,
)

VERSION = "0.1.0"


def setup_logging(verbose: bool = False) -> None:
    """Sets up logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from libraries
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def print_result(result: PipelineResult) -> None:
    if result.success:
        print(f"✅ {result.action_type.value}: {result.message}")
    elif result.status == PipelineStatus.CLARIFICATION_NEEDED:
        print(f"❓ {result.question}")
    elif result.status == PipelineStatus.CANCELLED:
        print("Cancelled")
    else:
        print(f"❌ {result.message}")


def print_help() -> None:
    """Prints a list of example commands."""
    print()
    print("Example commands:")
    print("-" * 40)
    print("  vpn start france paris")
    print("  vpn stop")
    print("  lights on 50 kitchen")
    print("  random colour in every light")
    print("  music play playlist morning coffee")
    print("  music next")
    print("-" * 40)
    print()


async def run_interactive(pipeline: CommandPipeline, session_id: str) -> None:
    """Runs the interactive text mode."""
    print("=" * 60)
    print("Homebrain - Interactive Mode")
    print("=" * 60)
    print()
    print("Type commands to test the assistant.")
    print("Type 'help' for a list of example commands.")
    print("Type 'quit' or 'exit' to stop.")
    print()

    while True:
        try:
            command = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not command:
            continue

        if command.lower() in ("quit", "exit", "q"):
            print("Goodbye!")
            break

        if command.lower() == "help":
            print_help()
            continue

        result = await pipeline.process_text(command, session_id)
        print_result(result)
        print()


async def run_single_command(pipeline: CommandPipeline, command: str, session_id: str) -> int:
    """Executes a single command and returns the exit code."""
    result = await pipeline.process_text(command, session_id)
    print_result(result)
    return 0 if result.success else 1


async def _run(command: Optional[str], session_id: str) -> int:
    pipeline = create_pipeline()
    try:
        if command:
            return await run_single_command(pipeline, command, session_id)
        await run_interactive(pipeline, session_id)
        return 0
    finally:
        await pipeline.close()


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="homebrain",
        description="Homebrain - home-automation command interpreter",
    )

    parser.add_argument(
        "-c", "--command",
        type=str,
        help="Execute a single command and exit",
    )

    parser.add_argument(
        "--session",
        type=str,
        default=DEFAULT_SESSION_ID,
        help="Conversation id for multi-turn clarification",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Homebrain v{VERSION}",
    )

    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    return asyncio.run(_run(parsed.command, parsed.session))


if __name__ == "__main__":
    sys.exit(main())
