"""
Connection options and their serialization helpers.

This module defines the option identifiers understood by transport
handles, the fixed table of human-readable option names used for
diagnostics, and the helpers that turn POST-field strings and header
lists back into (key, value) pairs.
"""

from enum import IntEnum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

Pair = Tuple[str, str]


class Option(IntEnum):
    """Identifiers of the configuration values a transport handle accepts."""
    TIMEOUT = 13
    POST = 47
    SSL_VERIFYPEER = 64
    HTTPGET = 80
    SSL_VERIFYHOST = 81
    NOSIGNAL = 99
    TCP_KEEPALIVE = 213
    WRITEDATA = 10001
    URL = 10002
    HTTPHEADER = 10023
    CAINFO = 10065
    CAPATH = 10097
    ACCEPT_ENCODING = 10102
    COPYPOSTFIELDS = 10165
    WRITEFUNCTION = 20011


OptionKey = Union[Option, int]


# Names rendered by format_options(); anything missing here shows as UNKNOWN.
OPTION_STRINGS: Mapping[int, str] = {
    Option.SSL_VERIFYPEER: "OPT_SSL_VERIFYPEER",
    Option.SSL_VERIFYHOST: "OPT_SSL_VERIFYHOST",
    Option.CAINFO: "OPT_CAINFO",
    Option.CAPATH: "OPT_CAPATH",
    Option.URL: "OPT_URL",
    Option.ACCEPT_ENCODING: "OPT_ACCEPT_ENCODING",
    Option.TCP_KEEPALIVE: "OPT_TCP_KEEPALIVE",
    Option.HTTPGET: "OPT_HTTPGET",
    Option.POST: "OPT_POST",
    Option.COPYPOSTFIELDS: "OPT_COPYPOSTFIELDS",
    Option.WRITEFUNCTION: "OPT_WRITEFUNCTION",
    Option.WRITEDATA: "OPT_WRITEDATA",
    Option.HTTPHEADER: "OPT_HTTPHEADER",
    Option.NOSIGNAL: "OPT_NOSIGNAL",
    Option.TIMEOUT: "OPT_TIMEOUT",
}

# Options whose value is an object reference rather than data.
ADDRESS_OPTIONS = frozenset({Option.WRITEFUNCTION, Option.WRITEDATA})


def serialize_option_value(option: int, value: Any) -> str:
    """
    Render an option value as a string for introspection.

    Strings and numbers render as themselves; object references
    (callbacks, sink objects, the header list) render as their
    decimal id so they can be shown as an opaque address.

    Args:
        option: The option the value belongs to
        value: The value stored for that option

    Returns:
        The serialized value
    """
    if option in ADDRESS_OPTIONS or option == Option.HTTPHEADER:
        return str(id(value))
    if isinstance(value, bool):
        return str(int(value))
    return str(value)


def pairs_to_fields(pairs: Iterable[Pair]) -> str:
    """Serialize pairs as ``k1=v1&k2=v2&...`` with no trailing separator."""
    return "&".join(f"{key}={value}" for key, value in pairs)


def fields_to_pairs(fields: str) -> List[Pair]:
    """
    Parse an ``&``-delimited ``key=value`` string back into pairs.

    Empty segments and segments without ``=`` are skipped. Each
    segment is split at its first ``=``.

    Args:
        fields: The serialized field string

    Returns:
        List of (key, value) pairs in their original order
    """
    result: List[Pair] = []
    for segment in fields.split("&"):
        if not segment:
            continue
        key, sep, value = segment.partition("=")
        if not sep:
            continue
        result.append((key, value))
    return result


def header_list_to_pairs(entries: Iterable[str]) -> List[Pair]:
    """
    Split each ``key:value`` header entry at its first colon.

    The single space written after the colon by ``"key: value"``
    entries is dropped; the rest of the value is kept verbatim.
    """
    result: List[Pair] = []
    for entry in entries:
        key, _, value = entry.partition(":")
        if value.startswith(" "):
            value = value[1:]
        result.append((key, value))
    return result


def format_options(
    options: Iterable[Tuple[int, str]],
    headers: Optional[Iterable[str]] = None,
) -> str:
    """
    Render serialized options as a human-readable, tab-indented listing.

    Args:
        options: (option, serialized value) pairs, e.g. from
                 ``Connection.get_option_strings()``
        headers: The header entries to expand under the header option

    Returns:
        One line per option, with POST fields and headers expanded
        into indented (key, value) lines
    """
    lines: List[str] = []
    for option, serialized in options:
        name = OPTION_STRINGS.get(option)
        if name is None:
            lines.append("\tUNKNOWN")
            continue

        if option == Option.COPYPOSTFIELDS:
            lines.append(f"\t{name}:")
            for key, value in fields_to_pairs(serialized):
                lines.append(f"\t\t{key}\t{value}")
        elif option == Option.HTTPHEADER:
            lines.append(f"\t{name}:")
            for key, value in header_list_to_pairs(headers or ()):
                lines.append(f"\t\t{key}\t{value}")
        elif option in ADDRESS_OPTIONS:
            lines.append(f"\t{name}\t{int(serialized):x}")
        else:
            lines.append(f"\t{name}\t{serialized}")

    return "\n".join(lines)

