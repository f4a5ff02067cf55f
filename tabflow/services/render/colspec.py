"""Parse manual LaTeX column specs into per-column alignments."""

from __future__ import annotations

from tabflow.core.errors import ColumnSpecMismatchError

_ALIGN_TOKENS = {"l": "l", "c": "c", "r": "r", "S": "r", "X": "l"}
_PARAGRAPH_TOKENS = {"p", "m", "b"}
_DECORATION_TOKENS = {"@", "!", ">", "<"}


def _read_group(spec: str, text: str, pos: int) -> tuple[str, int]:
    """Return the content of the brace group starting at ``pos`` and the index after it."""

    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos >= len(text) or text[pos] != "{":
        raise ColumnSpecMismatchError(spec, None, 0, detail=f"column spec {spec!r}: expected '{{' at offset {pos}")
    depth = 0
    for idx in range(pos, len(text)):
        char = text[idx]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[pos + 1 : idx], idx + 1
    raise ColumnSpecMismatchError(spec, None, 0, detail=f"column spec {spec!r}: unbalanced braces")


def _parse(spec: str, text: str) -> list[str]:
    alignments: list[str] = []
    pos = 0
    while pos < len(text):
        char = text[pos]
        if char.isspace() or char == "|":
            pos += 1
        elif char in _DECORATION_TOKENS:
            _, pos = _read_group(spec, text, pos + 1)
        elif char in _PARAGRAPH_TOKENS:
            _, pos = _read_group(spec, text, pos + 1)
            alignments.append("l")
        elif char == "*":
            count_text, pos = _read_group(spec, text, pos + 1)
            body, pos = _read_group(spec, text, pos)
            try:
                count = int(count_text.strip())
            except ValueError as exc:
                raise ColumnSpecMismatchError(
                    spec, None, 0, detail=f"column spec {spec!r}: bad repeat count {count_text!r}"
                ) from exc
            alignments.extend(_parse(spec, body) * count)
        elif char.isalpha():
            alignments.append(_ALIGN_TOKENS.get(char, "l"))
            pos += 1
        else:
            raise ColumnSpecMismatchError(
                spec, None, 0, detail=f"column spec {spec!r}: unexpected {char!r} at offset {pos}"
            )
    return alignments


def parse_colspec(spec: str) -> list[str]:
    """Alignment letter (``l``, ``c`` or ``r``) for every column ``spec`` declares.

    Rules (``|``), ``@{}``/``!{}`` separators and ``>{}``/``<{}`` decorations
    declare no column; ``p{}``/``m{}``/``b{}`` count as left aligned and
    ``*{n}{...}`` repeats its body.
    """

    return _parse(spec, spec)


def check_colspec(spec: str, expected: int) -> list[str]:
    """Parse ``spec`` and require exactly ``expected`` columns."""

    alignments = parse_colspec(spec)
    if len(alignments) != expected:
        raise ColumnSpecMismatchError(spec, len(alignments), expected)
    return alignments


__all__ = ["check_colspec", "parse_colspec"]
