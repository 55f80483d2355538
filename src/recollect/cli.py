"""
CLI entry point.

Commands:
- init: Create the memory vault
- recall <query>: Show the memory context recalled for a query
- consolidate <summary>: Merge a conversation summary into topic profiles
- conclude <transcript>: Summarize a transcript, then consolidate it
- health: Check LLM provider connectivity

Flags:
- --debug: Enable debug logging to file
"""

import asyncio
import logging
import sys

from recollect.core.config import Settings, get_settings
from recollect.core.logging import get_logger, setup_logging

USAGE = """Usage: recollect [--debug] <command> [args]
Commands: init, recall <query>, consolidate <summary>, conclude <transcript>, health
Flags: --debug (enable debug logging to data/recollect.log)"""


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    # Parse --debug flag (enables verbose DEBUG traces)
    debug_mode = "--debug" in sys.argv
    if debug_mode:
        sys.argv.remove("--debug")

    log_level = logging.DEBUG if debug_mode else logging.INFO
    log_file = settings.data_dir / "recollect.log"
    setup_logging(level=log_level, log_file=log_file)
    logger = get_logger("cli")

    logger.info(f"Logging to {log_file}" + (" (debug mode)" if debug_mode else ""))

    if len(sys.argv) < 2:
        print(USAGE)
        return 1

    command, args = sys.argv[1], sys.argv[2:]

    if command == "init":
        return asyncio.run(_init(settings))

    if command == "recall":
        if not args:
            print("Usage: recollect recall <query>")
            return 1
        return asyncio.run(_recall(settings, " ".join(args)))

    if command == "consolidate":
        if len(args) != 1:
            print("Usage: recollect consolidate <summary>")
            return 1
        return asyncio.run(_consolidate(settings, args[0]))

    if command == "conclude":
        if len(args) != 1:
            print("Usage: recollect conclude <transcript>")
            return 1
        return asyncio.run(_conclude(settings, args[0]))

    if command == "health":
        return asyncio.run(_health_check(settings))

    print(f"Unknown command: {command}")
    return 1


def _notify(message: str) -> None:
    print(f"! {message}")


async def _init(settings: Settings) -> int:
    """Create vault folders and the empty score store."""
    from recollect.core.service import create_memory_service

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    service = await create_memory_service(settings, notifier=_notify)
    try:
        await service.init_vault()
    finally:
        await service.close()
    print(f"Created: {settings.data_dir}")
    return 0


async def _recall(settings: Settings, query: str) -> int:
    """Print recalled context for a query."""
    from recollect.core.service import create_memory_service

    service = await create_memory_service(settings, notifier=_notify)
    try:
        result = await service.recall(query)
    finally:
        await service.close()

    keywords = ", ".join(f"{k.keyword} ({k.in_prompt_score:.0f})" for k in result.keywords)
    print(f"Keywords: {keywords or '(none)'}")
    if result.new_topics:
        print(f"New topics: {', '.join(result.new_topics)}")
    print(f"Items: {len(result.items)} after {result.evaluation_rounds} evaluation rounds")
    print("-" * 40)
    print(result.context)
    return 0


async def _consolidate(settings: Settings, summary: str) -> int:
    """Consolidate one summary into topic profiles."""
    from recollect.core.service import create_memory_service

    service = await create_memory_service(settings, notifier=_notify)
    try:
        report = await service.consolidate(summary)
    finally:
        await service.close()
    return _print_report(report)


async def _conclude(settings: Settings, transcript: str) -> int:
    """Summarize and consolidate one transcript."""
    from recollect.core.service import create_memory_service

    service = await create_memory_service(settings, notifier=_notify)
    try:
        report = await service.conclude(transcript)
    finally:
        await service.close()
    return _print_report(report)


def _print_report(report) -> int:
    if report is None:
        print("Nothing consolidated.")
        return 1
    print(f"Summary: {report.reference}")
    for topic in report.updated:
        print(f"  {topic}: updated")
    for topic, reason in report.failed.items():
        print(f"  {topic}: failed ({reason})")
    return 0 if report.ok else 1


async def _health_check(settings: Settings) -> int:
    """Check LLM provider health."""
    from recollect.llm.router import create_default_router

    print("Checking LLM providers...")
    router = create_default_router(settings)

    if not router.available_providers:
        print("No providers configured.")
        return 1
    results = await router.health_check_all()
    await router.close_all()
    for provider, ok in results.items():
        print(f"  {provider.value}: {'OK' if ok else 'FAILED'}")
    return 0 if all(results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
