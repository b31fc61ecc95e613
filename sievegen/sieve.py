"""Helpers for emitting Sieve source text.

Quoted strings follow RFC 5228 section 2.4.2: only backslash and double
quote need escaping.
"""

import textwrap
from collections.abc import Iterable

INDENT = "    "

SEEN_FLAG = "\\Seen"
UNKNOWN_FOLDER = "Unknown"
UNREAD_FOLDER = "unread"
LABEL_HEADERS = ("from", "subject")


def quote(value: str) -> str:
    """Return ``value`` as a Sieve quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def string_list(values: Iterable[str]) -> str:
    """Return a Sieve string list, e.g. ``["a","b"]``."""
    return "[" + ",".join(quote(v) for v in values) + "]"


def code_block(text: str) -> str:
    """Indent every non-blank line of ``text`` by one level."""
    return textwrap.indent(text, INDENT)


def fileinto(folder: str) -> str:
    return f"\nfileinto {quote(folder)};"


def addflag(flag: str) -> str:
    return f"\naddflag {quote(flag)};"


def is_unknown(path: str) -> bool:
    """True for the catch-all folder and everything below it."""
    return path == UNKNOWN_FOLDER or path.startswith(UNKNOWN_FOLDER + "/")
