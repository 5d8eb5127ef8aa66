"""Entry point: python -m image2url (or the image2url-mcp script)."""
import logging
import sys

from .config import load_config
from .errors import ConfigurationError
from .server import run_server

logger = logging.getLogger("image2url")


def main() -> None:
    # stderr keeps stdout free for the stdio transport
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)
    run_server(config)


if __name__ == "__main__":
    main()
