"""Self-healing repair for almost-JSON produced by language models.

The repair runs a fixed sequence of heuristics, each one aimed at a defect
that local models commonly produce:

1. strip markdown code fences,
2. slice to the first top-level object, keeping the tail of one that never
   closes,
3. turn single-quoted strings into double-quoted ones,
4. drop trailing commas before ``}`` / ``]``,
5. quote bare object keys,
6. insert missing commas between adjacent values,
7. insert missing commas between two consecutive ``key: value`` lines,
8. drop unmatched closers and append the closers of unmatched openers.

Steps 4-8 run on a *masked* copy of the text in which every string literal is
replaced by an opaque placeholder, so braces, colons and commas inside string
values are never touched. The result is accepted only if ``json.loads``
succeeds; otherwise the caller gets the original text back.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from modflow.util.logger import get_logger

logger = get_logger("json_repair")

_MASK_OPEN = "\ue000"
_MASK_CLOSE = "\ue001"
_MASK_RE = re.compile(f'"{_MASK_OPEN}(\\d+){_MASK_CLOSE}"')

_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_BARE_KEY_RE = re.compile(r"(^|[{,])(\s*)([A-Za-z_][\w\-]*)(\s*):", re.MULTILINE)
_CLOSER_THEN_VALUE_RE = re.compile(r"([}\]])(\s*)([{\[\"])")
_STRING_THEN_CONTAINER_RE = re.compile(r"\"(\s*)([{\[])")
_STRING_NEWLINE_STRING_RE = re.compile(r"\"([ \t]*\n\s*)\"")
_MEMBER_SEPARATOR_RE = re.compile(r"[:,]")

_PAIRS = {"{": "}", "[": "]"}


@dataclass(frozen=True, slots=True)
class RepairOutcome:
    """Result of :func:`repair_json`.

    Attributes:
        text: Repaired text when ``valid``, otherwise the untouched input.
        repaired: True if ``text`` differs from the input.
        valid: True if ``text`` parses as JSON.
    """

    text: str
    repaired: bool
    valid: bool


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False
    return True


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text)


def _closing_index(text: str, start: int) -> Optional[int]:
    """Index of the brace closing the object opened at ``start``, or None.

    Brackets inside single- or double-quoted literals are not counted.
    """
    depth = 0
    quote: Optional[str] = None
    i, n = start, len(text)

    while i < n:
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ('"', "'"):
            quote = ch
        elif ch in _PAIRS:
            depth += 1
        elif ch in ("}", "]"):
            depth -= 1
            if depth == 0:
                return i if ch == "}" else None
        i += 1

    return None


def slice_to_object(text: str) -> str:
    """Cut ``text`` down to its first top-level object.

    An object that never closes keeps its tail whenever members follow the
    last ``}``; balancing appends the missing closers later.
    """
    start = text.find("{")
    if start < 0:
        return text

    end = _closing_index(text, start)
    if end is not None:
        return text[start:end + 1]

    last = text.rfind("}")
    if last > start and not _MEMBER_SEPARATOR_RE.search(text[last + 1:]):
        return text[start:last + 1]
    return text[start:]


def normalize_quotes(text: str) -> str:
    """Rewrite single-quoted string literals as double-quoted ones.

    Double-quoted strings are copied verbatim, so apostrophes inside them
    survive. An unterminated single-quoted literal is left as it is.
    """
    out: List[str] = []
    i, n = 0, len(text)
    in_double = False

    while i < n:
        ch = text[i]
        if in_double:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_double = False
            i += 1
            continue

        if ch == '"':
            in_double = True
            out.append(ch)
            i += 1
            continue

        if ch == "'":
            j = i + 1
            buf: List[str] = []
            while j < n and text[j] != "'":
                if text[j] == "\\" and j + 1 < n:
                    buf.append("'" if text[j + 1] == "'" else text[j:j + 2])
                    j += 2
                    continue
                buf.append('\\"' if text[j] == '"' else text[j])
                j += 1
            if j >= n:
                out.append(text[i:])
                break
            out.append('"' + "".join(buf) + '"')
            i = j + 1
            continue

        out.append(ch)
        i += 1

    return "".join(out)


def _mask_strings(text: str) -> Tuple[str, List[str]]:
    """Replace each double-quoted literal with an indexed placeholder."""
    out: List[str] = []
    literals: List[str] = []
    i, n = 0, len(text)

    while i < n:
        ch = text[i]
        if ch != '"':
            out.append(ch)
            i += 1
            continue

        j = i + 1
        while j < n:
            if text[j] == "\\":
                j += 2
                continue
            if text[j] == '"':
                break
            j += 1

        if j >= n:
            # Unterminated literal; nothing after it can be repaired safely.
            out.append(text[i:])
            break

        literals.append(text[i + 1:j])
        out.append(f'"{_MASK_OPEN}{len(literals) - 1}{_MASK_CLOSE}"')
        i = j + 1

    return "".join(out), literals


def _unmask_strings(masked: str, literals: List[str]) -> str:
    def restore(match: re.Match) -> str:
        literal = literals[int(match.group(1))]
        # Raw control characters are illegal inside JSON strings.
        literal = literal.replace("\r", "\\r").replace("\n", "\\n").replace("\t", "\\t")
        return f'"{literal}"'

    return _MASK_RE.sub(restore, masked)


def remove_trailing_commas(masked: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", masked)


def quote_bare_keys(masked: str) -> str:
    return _BARE_KEY_RE.sub(r'\1\2"\3"\4:', masked)


def insert_missing_commas(masked: str) -> str:
    """Insert commas between adjacent tokens that can only be siblings."""
    masked = _CLOSER_THEN_VALUE_RE.sub(r"\1,\2\3", masked)
    masked = _STRING_THEN_CONTAINER_RE.sub(r'",\1\2', masked)
    masked = _STRING_NEWLINE_STRING_RE.sub(r'",\1"', masked)
    return masked


def insert_line_commas(masked: str) -> str:
    """Add a comma to a ``key: value`` line directly followed by another one."""
    lines = masked.split("\n")
    for index in range(len(lines) - 1):
        line = lines[index].rstrip()
        following = ""
        for candidate in lines[index + 1:]:
            if candidate.strip():
                following = candidate.strip()
                break
        if not line.strip() or not following:
            continue
        if line.endswith((",", "{", "[", ":")):
            continue
        if following.startswith(("}", "]", ",")):
            continue
        if ":" in line and ":" in following:
            lines[index] = line + ","
    return "\n".join(lines)


def balance_brackets(masked: str) -> str:
    """Drop closers with no opener and append closers for unclosed openers."""
    stack: List[str] = []
    out: List[str] = []

    for ch in masked:
        if ch in _PAIRS:
            stack.append(ch)
        elif ch in ("}", "]"):
            if not stack or _PAIRS[stack[-1]] != ch:
                continue
            stack.pop()
        out.append(ch)

    out.extend(_PAIRS[opener] for opener in reversed(stack))
    return "".join(out)


def repair_json(text: str) -> RepairOutcome:
    """Try to turn ``text`` into parseable JSON.

    Text that already parses after fence stripping and slicing is returned
    without running the structural heuristics.
    """
    if not text:
        return RepairOutcome(text=text, repaired=False, valid=False)

    candidate = slice_to_object(strip_code_fences(text)).strip()
    if _parses(candidate):
        return RepairOutcome(text=candidate, repaired=candidate != text, valid=True)

    candidate = normalize_quotes(candidate)
    masked, literals = _mask_strings(candidate)
    masked = remove_trailing_commas(masked)
    masked = quote_bare_keys(masked)
    masked = insert_missing_commas(masked)
    masked = insert_line_commas(masked)
    masked = remove_trailing_commas(masked)
    masked = balance_brackets(masked)
    candidate = _unmask_strings(masked, literals)

    if _parses(candidate):
        logger.debug("[JSON REPAIR] Repaired payload (%d -> %d chars)", len(text), len(candidate))
        return RepairOutcome(text=candidate, repaired=True, valid=True)

    logger.warning("[JSON REPAIR] Payload still unparseable after repair; returning original text")
    return RepairOutcome(text=text, repaired=False, valid=False)
