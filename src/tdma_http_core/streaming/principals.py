"""
User principals endpoint.

The principals document describes the user's accounts and the
streamer connection info needed to open a streaming session.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

from ..connection import Connection
from ..exceptions import APIException, ServerError
from .credentials import Credentials

logger = logging.getLogger(__name__)

USER_PRINCIPALS_URL = "https://api.tdameritrade.com/v1/userprincipals"
STREAMING_FIELDS = ("streamerSubscriptionKeys", "streamerConnectionInfo")

ConnectionFactory = Callable[[str], Connection]


def build_user_principals_url(fields=STREAMING_FIELDS) -> str:
    """Build the principals URL requesting the given optional fields."""
    if not fields:
        return USER_PRINCIPALS_URL
    return f"{USER_PRINCIPALS_URL}?fields={','.join(fields)}"


def get_user_principals_for_streaming(
    credentials: Credentials,
    *,
    connection_factory: Optional[ConnectionFactory] = None,
) -> Dict[str, Any]:
    """
    Fetch the user principals document with streamer fields included.

    Args:
        credentials: OAuth credentials of the user
        connection_factory: Callable building a connection for a URL
                            (Connection.secure_get if None)

    Returns:
        The parsed principals document

    Raises:
        ConnectionException: If the connection cannot be used
        ConnectionError: If the request fails at the transport level
        ServerError: If the API answers with a status other than 200
        APIException: If the response body is not a JSON object
    """
    factory = connection_factory or Connection.secure_get
    url = build_user_principals_url()

    with factory(url) as connection:
        connection.add_headers([("Authorization", f"Bearer {credentials.access_token}")])
        status, body, _ = connection.execute()

    if status != 200:
        logger.error(f"User principals request returned {status}")
        raise ServerError(status, f"user principals request failed with status {status}")

    try:
        document = json.loads(body)
    except ValueError as e:
        raise APIException("failed to parse user principals JSON: " + str(e), cause=e)

    if not isinstance(document, dict):
        raise APIException("returned user principals is not a JSON object")

    return document
