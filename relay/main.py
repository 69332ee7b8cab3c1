#!/usr/bin/env python3
"""Rate Relay.

Polls several upstream price sources per trading pair, keeps the latest
observation from each, and serves the best fresh price over HTTP.

Run with a TOML config file. See config.toml for an example.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from .src.RateRelay import RateRelay
from .src.RelayConfig import ConfigError, RelayConfig
from .src.sources import get_available_sources

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_env_api_keys() -> dict[str, str]:
    """Parse API keys from individual environment variables.

    Looks for: API_KEY_JUPITER, APIKEY_JUPITER, JUPITER_API_KEY, etc.

    :returns: Dict mapping source names to API keys.
    """
    api_keys = {}
    prefixes = ["API_KEY_", "APIKEY_"]
    suffix = "_API_KEY"

    for key, value in os.environ.items():
        if not value:
            continue
        for prefix in prefixes:
            if key.startswith(prefix):
                api_keys[key[len(prefix):].lower()] = value
                break
        else:
            if key.endswith(suffix) and len(key) > len(suffix):
                api_keys.setdefault(key[: -len(suffix)].lower(), value)

    return api_keys


def main() -> None:
    """Main entry point for the Rate Relay CLI."""
    load_dotenv()
    available_sources = get_available_sources()

    parser = argparse.ArgumentParser(
        description="Rate Relay: best fresh price across prioritized sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available feed types:
  {', '.join(available_sources)}

Examples:
  # Run with the default config.toml in the working directory
  python -m relay.main

  # Custom config, port and staleness threshold
  python -m relay.main --config /etc/relay.toml --port 9000 --staleness-threshold 10

Environment variables (CLI args take precedence over env, env over the file):
  CONFIG_PATH, PORT, STALENESS_THRESHOLD_SECS,
  API_KEY_JUPITER (or JUPITER_API_KEY), etc.
""",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to TOML configuration file (default: config.toml)",
        default=os.environ.get("CONFIG_PATH") or "config.toml",
    )

    parser.add_argument(
        "--port",
        type=int,
        help="HTTP port (overrides [server].port)",
        default=int(os.environ["PORT"]) if os.environ.get("PORT") else None,
    )

    parser.add_argument(
        "--staleness-threshold",
        dest="staleness_threshold",
        type=float,
        help="Seconds an observation stays usable (overrides [server].staleness_threshold_secs)",
        default=(
            float(os.environ["STALENESS_THRESHOLD_SECS"])
            if os.environ.get("STALENESS_THRESHOLD_SECS")
            else None
        ),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.port is not None and not 0 < args.port < 65536:
        parser.error("--port must be in 1..65535")

    if args.staleness_threshold is not None and args.staleness_threshold <= 0:
        parser.error("--staleness-threshold must be positive")

    try:
        config = RelayConfig.load(args.config)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if args.port is not None:
        config.server.port = args.port
    if args.staleness_threshold is not None:
        config.server.staleness_threshold_secs = args.staleness_threshold

    api_keys = parse_env_api_keys()

    # Log configuration
    logger.info("=" * 60)
    logger.info("Rate Relay")
    logger.info("=" * 60)
    logger.info(f"Config File:       {args.config}")
    logger.info(f"Port:              {config.server.port}")
    logger.info(f"Staleness:         {config.server.staleness_threshold_secs}s")
    for feed in config.feeds:
        state = "enabled" if feed.enabled else "disabled"
        logger.info(
            f"Feed:              {feed.feed_type} {feed.pair} "
            f"priority={feed.priority} interval={feed.interval_ms}ms ({state})"
        )
    if api_keys:
        logger.info(f"API Keys:          {', '.join(api_keys.keys())}")
    logger.info("=" * 60)

    try:
        relay = RateRelay(config, api_keys=api_keys)
        asyncio.run(relay.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
