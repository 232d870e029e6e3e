"""Parser and formatter for KEY=value env files."""
import re
from typing import Iterable, List

from .models import EnvEntry

# KEY=`...` where the backtick block may span lines; \` inside the block
# does not terminate it and stands for a literal backtick.
_MULTILINE_ASSIGNMENT = re.compile(
    r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*`((?:\\.|[^`\\])*)`",
    re.MULTILINE | re.DOTALL,
)
_ASSIGNMENT = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")
_QUOTES = ('"', "'")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def parse_env_file(content: str) -> List[EnvEntry]:
    """
    Parse env file content into entries.

    Backtick-quoted multi-line values are extracted first, then the rest of
    the text is read line by line. Multi-line entries come before single-line
    ones in the result, each group in file order.

    Duplicate keys are not merged: every assignment yields its own entry and
    callers decide which one wins.

    Args:
        content: Raw file content

    Returns:
        List of EnvEntry, empty for blank or comment-only content
    """
    entries: List[EnvEntry] = []
    remaining_parts: List[str] = []
    position = 0

    for match in _MULTILINE_ASSIGNMENT.finditer(content):
        value = match.group(2).replace("\\`", "`")
        entries.append(EnvEntry(key=match.group(1), value=value, is_multiline=True))
        remaining_parts.append(content[position:match.start()])
        position = match.end()
    remaining_parts.append(content[position:])
    remaining = "".join(remaining_parts)

    for line in remaining.split("\n"):
        line = line.rstrip("\r")
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        line_match = _ASSIGNMENT.match(line)
        if line_match:
            entries.append(EnvEntry(key=line_match.group(1), value=_strip_quotes(line_match.group(2))))

    return entries


def format_env(entries: Iterable[EnvEntry]) -> str:
    """Render entries as env file text, backtick-quoting multi-line values.

    Backticks inside a multi-line value are escaped with a backslash so the block
    parses back to the same value.
    """
    lines = []
    for entry in entries:
        if "\n" in entry.value:
            escaped = entry.value.replace("`", "\\`")
            lines.append(f"{entry.key}=`{escaped}`")
        else:
            lines.append(f"{entry.key}={entry.value}")
    return "\n".join(lines)
