"""
Citation Parsing

Reads the model's self-reported sources back out of its answer.

The model is asked to end with ``CITATIONS: 1, 3`` or ``CITATIONS: none``
but nothing enforces that, so parsing is best-effort and never raises:

    - No marker: the whole text is the answer, nothing is cited.
    - Only the first marker counts; the citation list ends at the end
      of that line (or at a second marker).
    - Tokens that are not integers, are < 1, or exceed the number of
      notes offered are dropped. Repeats are dropped, order is kept.
"""

from __future__ import annotations

from typing import Final, NamedTuple

CITATION_MARKER: Final[str] = "CITATIONS:"


class ParsedAnswer(NamedTuple):
    """Answer text with the citation line removed, plus 1-based ordinals."""

    answer: str
    ordinals: list[int]


def parse_citations(text: str, offered: int) -> ParsedAnswer:
    """
    Split a model response into answer text and valid citation ordinals.

    Args:
        text: Raw completion text.
        offered: Number of notes shown to the model (valid ordinals are 1..offered).

    Returns:
        ParsedAnswer with the trimmed pre-marker text and surviving ordinals.
    """
    answer, marker, tail = text.partition(CITATION_MARKER)
    if not marker:
        return ParsedAnswer(text.strip(), [])

    segment = tail.split(CITATION_MARKER, 1)[0].strip()
    line = segment.splitlines()[0] if segment else ""

    ordinals: list[int] = []
    for token in line.split(","):
        try:
            ordinal = int(token.strip())
        except ValueError:
            continue
        if 1 <= ordinal <= offered and ordinal not in ordinals:
            ordinals.append(ordinal)

    return ParsedAnswer(answer.strip(), ordinals)
