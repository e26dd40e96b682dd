"""OAuth credentials passed to authenticated API calls."""

from dataclasses import dataclass, field


@dataclass
class Credentials:
    """
    OAuth state for one API user.

    The access token is sent as a bearer token; the remaining fields
    are kept so callers can refresh it.
    """

    access_token: str
    refresh_token: str = ""
    epoch_sec_token_expiration: int = 0
    client_id: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.access_token:
            raise ValueError("access_token must not be empty")
