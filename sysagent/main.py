#!/usr/bin/env python3
"""
sysagent - Entry Point

Usage:
    sysagent                      # Start with the default config search path
    sysagent --config my.yaml     # Use custom config file
    sysagent --dry-run            # Print resolved config and exit
    sysagent --verbose            # Enable debug logging
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict

from sysagent import __version__
from sysagent.common.config import AgentConfig, load_config_file
from sysagent.common.exceptions import AgentError
from sysagent.common.logging_setup import configure_levels, get_service_logger

logger = get_service_logger("main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Device system status and remote configuration agent",
    )
    parser.add_argument("--config", "-c", help="Path to YAML configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--dry-run", action="store_true", help="Print configuration and exit")
    parser.add_argument("--version", action="version", version=f"sysagent {__version__}")
    return parser.parse_args(argv)


async def run(config: AgentConfig) -> None:
    # Imported here so logging is configured before service loggers are built
    from sysagent.services.system import AgentService

    service = AgentService(config)
    try:
        await service.start()
    finally:
        await service.stop()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config_file(args.config)
    except AgentError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if args.verbose:
        config.logging.level = "DEBUG"
    configure_levels(config.logging.level, config.logging.json_format)

    if args.dry_run:
        print(json.dumps(asdict(config), indent=2, default=str))
        return 0

    try:
        asyncio.run(run(config))
    except AgentError as e:
        logger.critical(f"Agent failed to start: {e.message}")
        return 1
    except KeyboardInterrupt:
        pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
