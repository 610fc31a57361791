#!/usr/bin/env python3
"""
Test script for print layout segmentation:
cut rolls are ordered by barcode sequence, then split into rows that fit the
physical substrate width.
"""
import pytest

from roll_planner.services import segmentation
from roll_planner.models import round_width
from roll_planner.services.segmentation import LayoutItem


def _items(*widths):
    return [LayoutItem(width=w, code=f"CR_{i:05d}") for i, w in enumerate(widths, 1)]


def test_segments_never_exceed_max_width():
    segments = segmentation.segment(_items(50, 50, 50), 123)

    assert [[item.width for item in seg.items] for seg in segments] == [[50, 50], [50]]
    assert segments[0].used_width == 100
    assert segments[0].waste == 23
    assert segments[1].waste == 73


def test_oversized_item_gets_its_own_segment_with_no_waste():
    segments = segmentation.segment(_items(30, 130, 40), 123)

    assert [[item.width for item in seg.items] for seg in segments] == [[30], [130], [40]]
    assert segments[1].oversized
    assert segments[1].waste == 0
    assert not segments[0].oversized


def test_segment_boundary_is_inclusive():
    segments = segmentation.segment(_items(61.5, 61.5), 123)

    assert len(segments) == 1
    assert segments[0].waste == 0


def test_concatenated_segments_keep_input_order():
    items = _items(70, 20, 60, 10, 90)

    segments = segmentation.segment(items, 100)

    flattened = [item for seg in segments for item in seg.items]
    assert flattened == items


def test_empty_input_gives_no_segments():
    assert segmentation.segment([], 123) == []


@pytest.mark.parametrize("max_width", [0, -10])
def test_non_positive_max_width_is_rejected(max_width):
    with pytest.raises(ValueError):
        segmentation.segment(_items(10), max_width)


def test_parse_sequence_takes_first_digit_run():
    assert segmentation.parse_sequence("CR_00123-25") == 123
    assert segmentation.parse_sequence("NO-DIGITS") is None
    assert segmentation.parse_sequence(None) is None


def test_sort_orders_by_sequence_then_width_and_keeps_unparsable_last():
    items = [
        LayoutItem(width=20, code="zeta"),
        LayoutItem(width=30, code="CR_00002"),
        LayoutItem(width=10, code="alpha"),
        LayoutItem(width=25, code="CR_00001"),
        LayoutItem(width=15, code="CR_00002"),
    ]

    ordered = segmentation.sort_items(items)

    assert [(i.code, i.width) for i in ordered] == [
        ("CR_00001", 25),
        ("CR_00002", 15),
        ("CR_00002", 30),
        ("zeta", 20),
        ("alpha", 10),
    ]


def test_truncate_name():
    assert segmentation.truncate_name("Short Co") == "Short Co"
    assert segmentation.truncate_name("A Very Long Company Name", 8) == "A Very …"


def test_layout_items_annotates_segments():
    layout = segmentation.layout_items(
        [
            {"width_inches": 50, "barcode_id": "CR_00002", "client_name": "Acme Packaging Industries"},
            {"width_inches": 50, "barcode_id": "CR_00001", "client_name": "Acme"},
            {"width": 50, "qr_code": "CR_00003"},
        ],
        max_allowed_width=123,
    )

    assert layout["summary"] == {
        "total_items": 3,
        "total_segments": 2,
        "total_width": 150,
        "total_waste": 96,
    }
    first = layout["segments"][0]
    assert first["segment_number"] == 1
    assert first["codes"] == ["CR_00001", "CR_00002"]
    assert first["items"][1]["client_label"] == "Acme Packag…"
    assert first["items"][0]["width_label"] == "50\""


@pytest.mark.parametrize("max_width", [123, 100, 60])
def test_segments_account_for_every_inch(max_width):
    widths = (40, 55.5, 130, 20, 61.5, 99, 12.25, 150, 33)
    segments = segmentation.segment(_items(*widths), max_width)

    assert sum(seg.used_width for seg in segments) == round_width(sum(widths))
    for seg in segments:
        if not seg.oversized:
            assert seg.used_width <= max_width
        else:
            assert len(seg.items) == 1
