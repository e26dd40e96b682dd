"""
Streaming credentials example using tdma_http_core.

This example fetches the user principals for an access token and
prints the websocket URL and encoded login credentials.

Usage:
    python streamer_info_example.py <access_token> [SERVICE ...]
"""

import logging
import sys

from tdma_http_core import (
    APIException,
    ConnectionError,
    Credentials,
    StreamerService,
    get_streamer_info,
    transport_runtime,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    credentials = Credentials(access_token=argv[1])
    services = [StreamerService(name) for name in argv[2:]] or [StreamerService("QUOTE")]

    with transport_runtime():
        try:
            info = get_streamer_info(credentials)
        except (APIException, ConnectionError) as e:
            logger.error(f"Could not derive streamer info: {e}")
            return 1

    logger.info(f"Streamer URL: {info.url}")
    logger.info(f"Primary account: {info.primary_acct_id}")
    logger.info(f"Encoded credentials: {info.credentials_encoded}")
    logger.info(f"Services: {', '.join(str(s) for s in services)}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
