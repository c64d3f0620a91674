# src/zapforge/core/metadata/properties.py
"""Minimal reader for Java-style .properties files.

Supports ``key=value`` and ``key: value`` pairs, ``#`` and ``!`` comment
lines, and backslash line continuation. Unicode escapes and whitespace-only
separators are not supported.
"""

_COMMENT_PREFIXES = ("#", "!")


def parse_properties(text: str) -> dict[str, str]:
    """Parse properties text into an ordered dict.

    Later duplicates of a key override earlier ones.

    Examples:
        >>> parse_properties("name=General\\nversion: 1")
        {'name': 'General', 'version': '1'}
    """
    result: dict[str, str] = {}
    pending = ""
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not pending and (not line or line.startswith(_COMMENT_PREFIXES)):
            continue
        if _is_continued(line):
            pending += line[:-1]
            continue
        logical = pending + line
        pending = ""
        key, value = _split_pair(logical)
        result[key] = value
    if pending:
        key, value = _split_pair(pending)
        result[key] = value
    return result


def _is_continued(line: str) -> bool:
    # An odd number of trailing backslashes escapes the newline
    stripped = line.rstrip("\\")
    return (len(line) - len(stripped)) % 2 == 1


def _split_pair(line: str) -> tuple[str, str]:
    positions = [pos for pos in (line.find("="), line.find(":")) if pos >= 0]
    if not positions:
        return line.strip(), ""
    cut = min(positions)
    return line[:cut].strip(), line[cut + 1 :].strip()
