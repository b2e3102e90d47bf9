"""Response header blob parsing.

Transports expose response headers as a single CRLF-separated string of
``Name: value`` lines. This module turns that into the two views a
``Response`` carries.
"""

from __future__ import annotations


def parse_header_blob(blob: str) -> tuple[dict[str, str], list[tuple[str, str]]]:
    """Split a raw header blob into a lookup map and an ordered list.

    Returns:
        Tuple of (headers, raw_headers) where ``headers`` maps lower-cased
        names to values (last duplicate wins) and ``raw_headers`` keeps
        every line in order with its original casing.

    Lines without a colon are skipped. Names and values are stripped.
    """
    headers: dict[str, str] = {}
    raw_headers: list[tuple[str, str]] = []

    for line in blob.strip().split("\r\n"):
        name, sep, value = line.partition(":")
        if not sep:
            continue
        name = name.strip()
        value = value.strip()
        headers[name.lower()] = value
        raw_headers.append((name, value))

    return headers, raw_headers


def format_header_blob(pairs: list[tuple[str, str]]) -> str:
    """Render ``(name, value)`` pairs in the blob format transports expose."""
    return "".join(f"{name}: {value}\r\n" for name, value in pairs)


def is_json_content_type(content_type: str | None) -> bool:
    """Check whether a Content-Type value denotes a JSON payload.

    Parameters such as ``charset`` are ignored; ``+json`` suffixes match.
    """
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")
