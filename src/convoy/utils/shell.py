"""Shell quoting helpers for values written into remote files and script environments."""

import re

# Characters that never need escaping in a POSIX shell word.
_SAFE_CHARS = re.compile(r"[^A-Za-z0-9_\-.,:+/@\n]")
_ESCAPED_CHAR = re.compile(r"\\(.)", re.DOTALL)


def shell_escape(value: str) -> str:
    """Backslash-escape a string so it is read back as one literal shell word.

    Newlines are wrapped in single quotes. An empty string becomes ``''``.
    """
    if not value:
        return "''"

    escaped = _SAFE_CHARS.sub(lambda match: "\\" + match.group(0), value)
    return escaped.replace("\n", "'\n'")


def shell_unescape(value: str) -> str:
    """Reverse :func:`shell_escape` for values read back from disk."""
    if value == "''":
        return ""

    return _ESCAPED_CHAR.sub(r"\1", value.replace("'\n'", "\n"))
