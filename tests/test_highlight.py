import itertools

import pytest

from purifier.highlight import annotate, find_spans, plain_text, render_html
from purifier.models import Correction, Segment


def _c(corrected, original="x", reason="r"):
    return Correction(original=original, corrected=corrected, reason=reason)


def _assert_no_overlap(spans):
    for a, b in itertools.combinations(spans, 2):
        assert a.end <= b.start or b.end <= a.start, (a, b)


@pytest.mark.parametrize("text", ["", "hello", "多行\n文本"])
def test_no_corrections_returns_single_plain_segment(text):
    assert annotate(text, []) == [Segment(text)]


def test_empty_text_returns_single_plain_segment():
    assert annotate("", [_c("a")]) == [Segment("")]


def test_segments_in_order_with_plain_gaps(sample_result):
    text = sample_result.purified_text
    segments = annotate(text, sample_result.corrections)

    assert [s.text for s in segments] == ["AI研究", "是一个重要的领域。", "我们", "今天讨论它。"]
    assert segments[0].correction.corrected == "AI研究"
    assert not segments[1].annotated
    assert segments[2].correction.reason == "Removed filler"
    assert plain_text(segments) == text


def test_longer_correction_wins_over_contained_shorter_one():
    text = "AI研究是未来"
    segments = annotate(text, [_c("AI"), _c("AI研究")])

    annotated = [s for s in segments if s.annotated]
    assert len(annotated) == 1
    assert annotated[0].text == "AI研究"
    assert plain_text(segments) == text


def test_shorter_correction_still_matches_outside_longer_span():
    text = "AI研究 and AI"
    spans = find_spans(text, [_c("AI"), _c("AI研究")])

    assert [(s.start, s.end, s.correction.corrected) for s in spans] == [
        (0, 4, "AI研究"),
        (9, 11, "AI"),
    ]


def test_every_occurrence_of_a_phrase_is_annotated():
    text = "we we go"
    spans = find_spans(text, [_c("we")])
    assert [(s.start, s.end) for s in spans] == [(0, 2), (3, 5)]


def test_self_overlapping_occurrences_are_rejected():
    spans = find_spans("aaaa", [_c("aa")])
    assert [(s.start, s.end) for s in spans] == [(0, 2), (2, 4)]


def test_partial_overlap_between_corrections_is_rejected():
    text = "abcde"
    spans = find_spans(text, [_c("abc"), _c("cde")])
    assert [(s.start, s.end) for s in spans] == [(0, 3)]


def test_adversarial_lists_never_overlap():
    text = "the cat sat on the mat with the cat"
    corrections = [_c("the cat"), _c("cat"), _c("at"), _c("t"), _c("the cat"), _c("at on the m")]
    spans = find_spans(text, corrections)

    _assert_no_overlap(spans)
    assert spans == sorted(spans, key=lambda s: s.start)
    assert plain_text(annotate(text, corrections)) == text


def test_corrections_missing_from_edited_text_are_ignored():
    text = "the user rewrote everything"
    segments = annotate(text, [_c("not here")])
    assert segments == [Segment(text)]


def test_empty_corrected_phrase_is_skipped():
    text = "abc"
    assert find_spans(text, [_c("")]) == []
    assert annotate(text, [_c("")]) == [Segment(text)]


def test_span_reaching_end_has_no_trailing_segment():
    segments = annotate("hello world", [_c("world")])
    assert [s.text for s in segments] == ["hello ", "world"]


def test_render_html_escapes_and_adds_tooltip():
    correction = Correction(original="<b>", corrected="&", reason='say "and"')
    html = str(render_html(annotate("a & <i>", [correction])))

    assert "<i>" not in html
    assert "&lt;i&gt;" in html
    assert 'class="correction"' in html
    assert "&lt;b&gt;" in html
    assert "&#34;and&#34;" in html
