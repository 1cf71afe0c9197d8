"""Node identifier allocation.

Node ids follow spreadsheet column naming: a, b, ..., z, aa, ab, ..., az,
ba, ... (bijective base-26 over lowercase letters). The next id depends only
on the previous one, so check_list.latest_id is the only counter persisted.
"""

import string

_ALPHABET = string.ascii_lowercase


def node_id_to_index(node_id: str) -> int:
    """Map an id to its 1-based position in the sequence ("a" -> 1, "aa" -> 27)."""
    value = 0
    for ch in node_id.strip().lower():
        if ch not in _ALPHABET:
            raise ValueError(f"Invalid node id {node_id!r}: letters a-z only")
        value = value * 26 + (ord(ch) - ord("a") + 1)
    return value


def index_to_node_id(index: int) -> str:
    if index < 1:
        raise ValueError(f"Node id index must be >= 1, got {index}")
    chars = []
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        chars.append(_ALPHABET[remainder])
    return "".join(reversed(chars))


def next_node_id(current: str | None) -> str:
    """Successor of ``current``; an empty/initial id maps to "a"."""
    if not current or not current.strip():
        return "a"
    return index_to_node_id(node_id_to_index(current) + 1)


def allocate_node_ids(latest_id: str | None, count: int) -> list[str]:
    """Mint ``count`` fresh ids following ``latest_id``."""
    ids = []
    current = latest_id
    for _ in range(count):
        current = next_node_id(current)
        ids.append(current)
    return ids
