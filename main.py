"""
Entrypoint: load config, set up logging, issue one authenticated GET
"""

import asyncio
import sys

import structlog
from dotenv import load_dotenv

from authclient.client import create_client
from authclient.config import Config
from authclient.errors import RefreshError, TransportError
from authclient.log import configure_logging


async def main(path: str) -> int:
    """Fetch `path` through the refreshing client and log the outcome."""
    # Load environment variables from .env file
    load_dotenv()

    config = Config()
    configure_logging(config.logging.get('level', 'INFO'), config.logging.get('format', 'json'))
    logger = structlog.get_logger(__name__)

    async with create_client(config) as client:
        try:
            response = await client.get(path)
        except RefreshError as e:
            logger.error("reauthentication_required", path=path, error=str(e))
            return 2
        except TransportError as e:
            logger.error("request_failed", path=path, status_code=e.status_code, error=str(e))
            return 1

        logger.info("request_completed",
                    path=path,
                    status_code=response.status_code,
                    size=len(response.content))
        print(response.text)
    return 0


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "/movies"
    sys.exit(asyncio.run(main(target)))
