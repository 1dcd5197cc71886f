"""Map corrections back onto the purified text for inline highlighting.

The model only reports ``(original, corrected, reason)`` triples, not where
each edit landed. We therefore search the displayed text for each
``corrected`` phrase. This is a heuristic rather than a positional diff: a
correction can be attributed to an unrelated, identical-looking occurrence
elsewhere in the text, and phrases the user has since edited away simply stop
being highlighted.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from markupsafe import Markup, escape

from .models import Correction, Segment, Span


def find_spans(text: str, corrections: Iterable[Correction]) -> List[Span]:
    """Return non-overlapping spans sorted by start offset.

    Longer ``corrected`` phrases claim their ranges first so that a short
    phrase contained in a longer one cannot fragment it.
    """
    ordered = sorted(corrections, key=lambda c: len(c.corrected), reverse=True)
    accepted: List[Span] = []

    for correction in ordered:
        needle = correction.corrected
        if not needle:
            continue
        pos = text.find(needle)
        while pos != -1:
            end = pos + len(needle)
            if not any(span.overlaps(pos, end) for span in accepted):
                accepted.append(Span(start=pos, end=end, correction=correction))
            pos = text.find(needle, pos + 1)

    return sorted(accepted, key=lambda span: span.start)


def annotate(text: str, corrections: Sequence[Correction]) -> List[Segment]:
    if not text or not corrections:
        return [Segment(text)]

    segments: List[Segment] = []
    cursor = 0
    for span in find_spans(text, corrections):
        if span.start > cursor:
            segments.append(Segment(text[cursor:span.start]))
        segments.append(Segment(text[span.start:span.end], span.correction))
        cursor = span.end

    if cursor < len(text) or not segments:
        segments.append(Segment(text[cursor:]))
    return segments


def plain_text(segments: Iterable[Segment]) -> str:
    return "".join(segment.text for segment in segments)


def _render_segment(segment: Segment) -> Markup:
    if segment.correction is None:
        return escape(segment.text)
    correction = segment.correction
    return Markup(
        '<span class="correction" tabindex="0">'
        '<span class="correction-text">{text}</span>'
        '<span class="correction-tip" role="tooltip">'
        '<span class="tip-original">{original}</span>'
        '<span class="tip-arrow">&rarr;</span>'
        '<span class="tip-corrected">{corrected}</span>'
        '<span class="tip-reason">{reason}</span>'
        "</span></span>"
    ).format(
        text=segment.text,
        original=correction.original,
        corrected=correction.corrected,
        reason=correction.reason,
    )


def render_html(segments: Iterable[Segment]) -> Markup:
    """Render segments as escaped HTML with a hover tooltip per correction."""
    return Markup("").join(_render_segment(segment) for segment in segments)
