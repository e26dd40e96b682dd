"""
Streaming session credentials.

This module derives the StreamerInfo needed to open a streaming
session from the user principals document: the websocket URL, the
primary account and the credential string sent at login.
"""

import calendar
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

from ..exceptions import APIException
from .credentials import Credentials
from .principals import get_user_principals_for_streaming

logger = logging.getLogger(__name__)

PrincipalsFetcher = Callable[[Credentials], Dict[str, Any]]

TIMESTAMP_LENGTH = 24
TIMESTAMP_UTC_OFFSET = "0000"
# year, month, day, hour, minute, second
TIMESTAMP_FIELDS = ((0, 4), (5, 7), (8, 10), (11, 13), (14, 16), (17, 19))


@dataclass(frozen=True)
class StreamerCredentials:
    """Login fields of a streaming session, taken from one principals document."""

    user_id: str
    token: str
    company: str
    segment: str
    cd_domain: str
    user_group: str
    access_level: str
    authorized: bool
    timestamp: int  # epoch milliseconds
    app_id: str
    acl: str


@dataclass
class StreamerInfo:
    """
    Everything needed to open a streaming session.

    credentials_encoded is filled in by encode_credentials() and is not
    recomputed if the record is changed afterwards.
    """

    credentials: StreamerCredentials
    url: str
    primary_acct_id: str
    credentials_encoded: str = ""

    def encode_credentials(self) -> str:
        """
        Encode the credentials as a percent-encoded query string.

        Fields are always emitted in the order the streaming login
        expects: userid, token, company, segment, cddomain, usergroup,
        accesslevel, authorized, acl, timestamp, appid.

        Returns:
            The encoded string, also stored on credentials_encoded
        """
        c = self.credentials
        fields = (
            ("userid", c.user_id),
            ("token", c.token),
            ("company", c.company),
            ("segment", c.segment),
            ("cddomain", c.cd_domain),
            ("usergroup", c.user_group),
            ("accesslevel", c.access_level),
            ("authorized", "Y" if c.authorized else "N"),
            ("acl", c.acl),
            ("timestamp", c.timestamp),
            ("appid", c.app_id),
        )
        raw = "&".join(f"{key}={value}" for key, value in fields)
        self.credentials_encoded = quote(raw, safe="")
        return self.credentials_encoded


def timestamp_to_ms(timestamp: str) -> int:
    """
    Convert a streamer token timestamp to epoch milliseconds.

    The timestamp must look exactly like ``2018-06-12T02:18:23+0000``:
    24 characters with a zero UTC offset. Fields are read by position
    and interpreted as UTC.

    Args:
        timestamp: The token timestamp from the principals document

    Returns:
        Milliseconds since the epoch

    Raises:
        APIException: If the timestamp is malformed
    """
    if (
        not isinstance(timestamp, str)
        or len(timestamp) != TIMESTAMP_LENGTH
        or timestamp[20:24] != TIMESTAMP_UTC_OFFSET
    ):
        raise APIException(f"invalid timestamp from streamerInfo: {timestamp!r}")

    digits = [timestamp[start:end] for start, end in TIMESTAMP_FIELDS]
    if not all(d.isascii() and d.isdigit() for d in digits):
        raise APIException(f"invalid timestamp from streamerInfo: {timestamp!r}")

    # Day and time fields roll over; month and year must be in range
    try:
        seconds = calendar.timegm(tuple(int(d) for d in digits) + (0, 0, 0))
    except (ValueError, OverflowError) as e:
        raise APIException(f"invalid timestamp from streamerInfo: {timestamp!r}", cause=e)
    return seconds * 1000


def get_streamer_info(
    credentials: Credentials,
    *,
    fetch_principals: Optional[PrincipalsFetcher] = None,
) -> StreamerInfo:
    """
    Derive streaming session info from the user principals.

    Only the first entry of "accounts" is used.

    Args:
        credentials: OAuth credentials of the user
        fetch_principals: Callable returning the parsed principals
                          document (get_user_principals_for_streaming
                          if None)

    Returns:
        StreamerInfo with credentials_encoded already computed

    Raises:
        APIException: If the document lacks required keys or fields
    """
    fetch = fetch_principals or get_user_principals_for_streaming
    document = fetch(credentials)

    if "accounts" not in document:
        raise APIException("returned user principals has no 'accounts'")
    if "streamerInfo" not in document:
        raise APIException("returned user principals has no 'streamerInfo'")

    try:
        account = document["accounts"][0]
        streamer = document["streamerInfo"]
        streamer_credentials = StreamerCredentials(
            user_id=_text(account["accountId"]),
            token=_text(streamer["token"]),
            company=_text(account["company"]),
            segment=_text(account["segment"]),
            cd_domain=_text(account["accountCdDomainId"]),
            user_group=_text(streamer["userGroup"]),
            access_level=_text(streamer["accessLevel"]),
            authorized=True,
            timestamp=timestamp_to_ms(streamer["tokenTimestamp"]),
            app_id=_text(streamer["appId"]),
            acl=_text(streamer["acl"]),
        )
        info = StreamerInfo(
            credentials=streamer_credentials,
            url="wss://" + _text(streamer["streamerSocketUrl"]) + "/ws",
            primary_acct_id=_text(document["primaryAccountId"]),
        )
    except (KeyError, IndexError, TypeError) as e:
        raise APIException(
            "failed to convert UserPrincipals JSON to StreamerInfo: " + repr(e), cause=e
        )

    info.encode_credentials()
    logger.debug(f"Streamer info derived for account {info.primary_acct_id}")
    return info


def _text(value: Any) -> str:
    """Read a JSON string field; numbers are accepted the way account ids sometimes arrive."""
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    raise TypeError(f"expected string, got {type(value).__name__}")
