"""Best-effort recovery of near-valid JSON documents.

Handles the two structural defects seen in upstream advocate exports:
- Trailing commas before a closing ``}`` or ``]``
- Truncated documents with unclosed objects/arrays

A direct parse is always attempted first, so valid documents cost a single
``json.loads``.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)

TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")
REMOVED_TRAILING_COMMAS = "removed_trailing_commas"

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class RepairResult:
    """Outcome of a parse/repair attempt."""

    success: bool
    data: Any = None
    repaired: bool = False
    repairs: List[str] = field(default_factory=list)
    error: Optional[str] = None


def parse_json(raw_data: str) -> RepairResult:
    """Parse JSON text, falling back to structural repair.

    Args:
        raw_data: Raw document text

    Returns:
        RepairResult with ``repaired=False`` when the text parsed as-is
    """
    try:
        return RepairResult(success=True, data=json.loads(raw_data), repaired=False)
    except (json.JSONDecodeError, TypeError, RecursionError):
        pass

    return repair_json_structure(raw_data)


def repair_json_structure(raw_data: str) -> RepairResult:
    """Apply structural repairs and re-parse.

    Args:
        raw_data: Raw document text that failed a direct parse

    Returns:
        RepairResult describing the repairs that were applied or attempted
    """
    repairs: List[str] = []
    repaired_data = (raw_data or "").strip()

    without_commas = TRAILING_COMMA_PATTERN.sub(r"\1", repaired_data)
    if without_commas != repaired_data:
        repaired_data = without_commas
        repairs.append(REMOVED_TRAILING_COMMAS)

    unclosed = find_unclosed_brackets(repaired_data)
    if unclosed:
        repaired_data = repaired_data.rstrip() + "\n" + generate_closing_brackets(unclosed)
        repairs.append(f"balanced_{len(unclosed)}_brackets")

    try:
        parsed = json.loads(repaired_data)
    except (json.JSONDecodeError, RecursionError) as e:
        return RepairResult(
            success=False,
            repaired=bool(repairs),
            repairs=repairs,
            error=str(e),
        )

    if repairs:
        LOGGER.info(f"JSON structure repaired: {', '.join(repairs)}")

    return RepairResult(success=True, data=parsed, repaired=bool(repairs), repairs=repairs)


def is_quote_escaped(data: str, quote_index: int) -> bool:
    """Return True when the quote at ``quote_index`` is preceded by an odd run of backslashes."""
    backslashes = 0
    i = quote_index - 1
    while i >= 0 and data[i] == "\\":
        backslashes += 1
        i -= 1
    return backslashes % 2 == 1


def _skip_string(data: str, start_index: int) -> int:
    """Return the index of the quote closing the string opened at ``start_index``."""
    i = start_index + 1
    while i < len(data):
        if data[i] == '"' and not is_quote_escaped(data, i):
            return i
        i += 1
    return i


def find_unclosed_brackets(data: str) -> List[str]:
    """Scan once and return the openers left without a matching closer.

    Characters inside strings never affect bracket state. A closer only pops
    the stack when it matches the most recent opener.
    """
    open_brackets: List[str] = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == '"':
            i = _skip_string(data, i) + 1
            continue

        if char in _CLOSERS:
            open_brackets.append(char)
        elif open_brackets and char == _CLOSERS[open_brackets[-1]]:
            open_brackets.pop()
        i += 1

    return open_brackets


def generate_closing_brackets(unclosed: List[str]) -> str:
    """Build closers for ``unclosed`` openers in LIFO order."""
    return "\n".join(_CLOSERS[opener] for opener in reversed(unclosed))
