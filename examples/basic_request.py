"""
Basic request example using tdma_http_core.

This example demonstrates how to configure a Connection, add
headers, execute a request and inspect the recorded options.
"""

import logging

from tdma_http_core import Connection, ConnectionError, transport_runtime

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def simple_get_request():
    """Demonstrate a simple GET request."""
    logger.info("Making simple GET request...")

    with Connection.secure_get("https://httpbin.org/get") as connection:
        connection.add_headers([("Accept", "application/json")])
        status, body, timestamp = connection.execute()
        logger.info(f"Response status: {status} at {timestamp.isoformat()}")
        logger.info(f"Response body length: {len(body)} chars")

        # Options applied to the connection so far
        logger.info("Connection options:\n%s", connection)


def post_request_with_fields():
    """Demonstrate a POST request with form fields."""
    logger.info("Making POST request with fields...")

    with Connection.secure_post("https://httpbin.org/post") as connection:
        connection.set_fields([("grant_type", "refresh_token"), ("access_type", "offline")])
        try:
            status, body, _ = connection.execute()
        except ConnectionError as e:
            logger.error(f"Request failed with transport code {e.code}")
            return
        logger.info(f"Response status: {status}")
        logger.info(f"Response body: {body[:200]}")


def main():
    """Run all examples."""
    with transport_runtime():
        simple_get_request()
        post_request_with_fields()


if __name__ == "__main__":
    main()
