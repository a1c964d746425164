from __future__ import annotations

import pytest

from docxpolyglot.segmenter import BatchBuilder, normalize_translations, strip_xml_incompatible
from docxpolyglot.structures import TextSegment


def _segments(count: int):
    return [TextSegment(index=i, anchor=None, original_text=f"s{i}") for i in range(count)]


@pytest.mark.parametrize("size", [1, 2, 3, 40])
def test_batches_cover_every_segment_once_in_order(size):
    segments = _segments(7)

    batches = BatchBuilder(size).build(segments)

    flattened = [segment for batch in batches for segment in batch.segments]
    assert flattened == segments
    assert sum(len(batch.segments) for batch in batches) == 7
    assert all(len(batch.segments) <= size for batch in batches)
    assert [batch.batch_id for batch in batches] == list(range(1, len(batches) + 1))
    assert [batch.start for batch in batches] == list(range(0, 7, size))


def test_no_segments_means_no_batches():
    assert BatchBuilder(5).build([]) == []


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BatchBuilder(0)


def test_short_response_is_padded_with_originals():
    assert normalize_translations(["Bonjour"], ["Hello", "World"]) == ["Bonjour", "World"]


def test_long_response_is_truncated():
    assert normalize_translations(["a", "b", "c", "d", "e"], ["1", "2", "3"]) == ["a", "b", "c"]


def test_equal_length_response_is_kept():
    assert normalize_translations(["uno", "dos"], ["one", "two"]) == ["uno", "dos"]


@pytest.mark.parametrize("payload", [None, "not a list", {"items": ["x"]}, 42])
def test_non_list_response_returns_originals(payload):
    original = ["one", "two"]

    result = normalize_translations(payload, original)

    assert result == original
    assert result is not original


def test_missing_and_non_text_items_fall_back_to_originals():
    translated = [None, 5, {"text": "x"}, ["y"], "cuatro"]
    original = ["one", "two", "three", "four", "five"]

    assert normalize_translations(translated, original) == [
        "one",
        "two",
        "three",
        "four",
        "cuatro",
    ]


def test_xml_incompatible_characters_are_removed():
    result = normalize_translations(["Bon\x00jour\x01", "tab\tand\nnewline"], ["a", "b"])

    assert result == ["Bonjour", "tab\tand\nnewline"]


def test_lone_surrogates_are_removed():
    assert strip_xml_incompatible("ok\ud800") == "ok"


@pytest.mark.parametrize("returned", [0, 1, 2, 3, 6])
def test_length_always_matches_original(returned):
    original = ["a", "b", "c"]
    assert len(normalize_translations(["x"] * returned, original)) == len(original)
