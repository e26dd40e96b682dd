"""
Streaming service names.

Each streaming subscription targets one service. Services are named by
fixed canonical strings; resolving a name that is not in the table is
an error.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from ..exceptions import ValueException


class StreamerServiceType(Enum):
    """Streaming data services."""
    NONE = 0
    ADMIN = 1
    ACTIVES_NASDAQ = 2
    ACTIVES_NYSE = 3
    ACTIVES_OTCBB = 4
    ACTIVES_OPTIONS = 5
    CHART_EQUITY = 6
    CHART_FOREX = 7  # not accepted by the streaming server
    CHART_FUTURES = 8
    CHART_OPTIONS = 9
    QUOTE = 10
    LEVELONE_FUTURES = 11
    LEVELONE_FOREX = 12
    LEVELONE_FUTURES_OPTIONS = 13
    OPTION = 14
    NEWS_HEADLINE = 15
    TIMESALE_EQUITY = 16
    TIMESALE_FUTURES = 17
    TIMESALE_FOREX = 18  # not accepted by the streaming server
    TIMESALE_OPTIONS = 19

    @classmethod
    def from_name(cls, name: str) -> "StreamerServiceType":
        """
        Resolve a canonical service name.

        Args:
            name: Exact service name, e.g. "QUOTE"

        Returns:
            The matching service type

        Raises:
            ValueException: If the name is unknown or not supported
        """
        try:
            return SERVICE_NAMES[name]
        except (KeyError, TypeError):
            raise ValueException(f"invalid service name: {name}") from None


UNSUPPORTED_SERVICES = frozenset({
    StreamerServiceType.CHART_FOREX,
    StreamerServiceType.TIMESALE_FOREX,
})

SERVICE_NAMES: Mapping[str, StreamerServiceType] = MappingProxyType({
    service.name: service
    for service in StreamerServiceType
    if service not in UNSUPPORTED_SERVICES
})


class StreamerService:
    """A resolved streaming service, constructed from its canonical name."""

    __slots__ = ("_service",)

    def __init__(self, service_name: str):
        self._service = StreamerServiceType.from_name(service_name)

    @property
    def service(self) -> StreamerServiceType:
        return self._service

    def __str__(self) -> str:
        return self._service.name

    def __repr__(self) -> str:
        return f"StreamerService({self._service.name!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, StreamerService):
            return self._service is other._service
        if isinstance(other, StreamerServiceType):
            return self._service is other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._service)
