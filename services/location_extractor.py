"""
Location Extractor

Derives the grouping label ("location") for a matched node from its
distinguished name. The location is not stored on the node itself; it is
the label of the DN element directly above the target node.

    OU=ADM,OU=Office1,OU=Sites,DC=example,DC=com  ->  Office1
    CN=Kiosks,OU=Branch9,DC=x,DC=y                ->  Branch9
    OU=R\\+D,OU=Office1,DC=x,DC=y                  ->  Office1  (target 'R+D')

DN values come back from the directory RFC 4514 escaped, so segments are
compared and returned in their unescaped form.
"""

import re
from typing import List, Optional, Tuple

UNKNOWN_LOCATION = "unknown"

# Container types tried in order: organizational unit first, then plain container
PRIMARY_CONTAINER_TYPE = "OU"
ALTERNATE_CONTAINER_TYPE = "CN"

# One RDN; a backslash escapes the next character, e.g. "OU=Smith\, John"
_RDN = re.compile(r"(?:\\.|[^,\\])+", re.DOTALL)

# "\2C" style hex escapes, or a backslash before a literal character
_ESCAPE = re.compile(r"\\(?:([0-9A-Fa-f]{2})|(.))", re.DOTALL)

# Trailing whitespace that is not itself escaped
_TRAILING_SPACE = re.compile(r"(?<!\\)\s+$")


def unescape_rdn_value(value: str) -> str:
    """Undo RFC 4514 escaping: 'R\\+D' -> 'R+D', 'Caf\\C3\\A9' -> 'Café'."""
    decoded = bytearray()
    position = 0
    for match in _ESCAPE.finditer(value):
        decoded += value[position:match.start()].encode("utf-8")
        if match.group(1):
            decoded.append(int(match.group(1), 16))
        else:
            decoded += match.group(2).encode("utf-8")
        position = match.end()
    decoded += value[position:].encode("utf-8")
    return decoded.decode("utf-8", errors="replace")


def _split_dn(path: str) -> List[Tuple[str, str]]:
    """Split a DN into (type, unescaped value) pairs, leaf first."""
    segments = []
    for rdn in _RDN.findall(path):
        attr, _, value = rdn.partition("=")
        value = _TRAILING_SPACE.sub("", value.lstrip())
        segments.append((attr.strip().upper(), unescape_rdn_value(value)))
    return segments


def _match_location(
    segments: List[Tuple[str, str]], container_type: str, target_name: str
) -> Optional[str]:
    target = target_name.casefold()
    for index, (attr, value) in enumerate(segments):
        if attr == container_type and value.casefold() == target:
            # Only the first occurrence nearest the leaf counts
            if index + 1 < len(segments):
                return segments[index + 1][1] or None
            return None
    return None


def extract_location(path: str, target_name: str) -> str:
    """
    Return the label of the DN element directly above `<type>=<target_name>`.

    Matching is case-insensitive and uses the first occurrence nearest the
    leaf. OU=<target_name> is tried before CN=<target_name>. Anything that
    does not match, including an empty path or target, is UNKNOWN_LOCATION.

    Args:
        path: Distinguished name of the matched node
        target_name: The node name that was searched for, unescaped

    Returns:
        str: The unescaped location label, or UNKNOWN_LOCATION
    """
    if not path or not path.strip() or not target_name or not target_name.strip():
        return UNKNOWN_LOCATION

    segments = _split_dn(path)
    target_name = target_name.strip()
    for container_type in (PRIMARY_CONTAINER_TYPE, ALTERNATE_CONTAINER_TYPE):
        location = _match_location(segments, container_type, target_name)
        if location is not None:
            return location

    return UNKNOWN_LOCATION
