"""Command-line entry point choosing between poller and listener modes."""

from __future__ import annotations

import argparse
import logging
import sys

from cfdyndns import listener, poller
from cfdyndns.cloudflare import CloudflareError
from cfdyndns.config import (
    MODE_LISTENER,
    MODE_POLLER,
    ConfigError,
    load_environment,
)


def main(argv: list[str] | None = None) -> int:
    """Run the updater in the mode chosen by the MODE environment variable."""
    parser = argparse.ArgumentParser(
        prog="cfdyndns",
        description=(
            "Keep DNS A records pointed at this host's public IP. "
            "All settings are read from environment variables."
        ),
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        env = load_environment()
        if env.mode == MODE_POLLER:
            poller.run(env)
        elif env.mode == MODE_LISTENER:
            listener.run(env)
        else:
            raise ConfigError(
                f"Invalid mode '{env.mode}', valid values are: "
                f"{MODE_POLLER} and {MODE_LISTENER}"
            )
    except (ConfigError, CloudflareError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())