"""Entry point for running bamcache as a module: python -m bamcache."""

import atexit
import logging
import sys

from .config import BamCacheConfig
from .core.tools import clear_readers
from .server import create_server


def main() -> None:
    """Run the bamcache MCP server."""
    try:
        config = BamCacheConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # stdout carries the stdio transport; logs go to stderr
    logging.basicConfig(
        level=config.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    def release_on_exit() -> None:
        released = clear_readers()
        if released > 0:
            logging.getLogger(__name__).info("Released %d decoded BAM files", released)

    atexit.register(release_on_exit)

    server = create_server(config)
    server.run(transport=config.transport)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
