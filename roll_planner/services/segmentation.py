"""
Segmentation Engine - Print layout of cut roll sequences

Lays an ordered sequence of cut roll widths across physical substrates no
wider than ``max_allowed_width``. Strict greedy first-fit: items are never
reordered and never split; an item wider than the substrate sits alone in
its own segment.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import re

from .. import config
from ..models import round_width

logger = logging.getLogger(__name__)

# Codes without a numeric sequence sort after everything else
UNPARSABLE_SEQUENCE = 10 ** 9

_SEQUENCE_RE = re.compile(r"(\d+)")


@dataclass
class LayoutItem:
    width: float
    code: str = ""
    client_name: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LayoutItem":
        width = raw.get("width_inches", raw.get("width"))
        if width is None:
            raise ValueError(f"Layout item has no width: {raw}")
        code = raw.get("barcode_id") or raw.get("code") or raw.get("qr_code") or ""
        return cls(
            width=float(width),
            code=str(code),
            client_name=str(raw.get("client_name") or ""),
            data=dict(raw),
        )


@dataclass
class Segment:
    items: List[LayoutItem]
    max_allowed_width: float
    oversized: bool = False

    @property
    def used_width(self) -> float:
        return round_width(sum(item.width for item in self.items))

    @property
    def waste(self) -> float:
        if self.oversized:
            return 0.0
        return round_width(max(0.0, self.max_allowed_width - self.used_width))

    @property
    def efficiency(self) -> float:
        return self.used_width / self.max_allowed_width

    def to_dict(self) -> Dict[str, Any]:
        return {
            "widths": [item.width for item in self.items],
            "codes": [item.code for item in self.items],
            "used_width": self.used_width,
            "waste": self.waste,
            "efficiency": round(self.efficiency * 100, 1),
            "oversized": self.oversized,
        }


def parse_sequence(code: Optional[str]) -> Optional[int]:
    """Numeric sequence of a code, e.g. CR_00123-25 → 123"""
    if not code:
        return None
    match = _SEQUENCE_RE.search(code)
    if match is None:
        return None
    return int(match.group(1))


def sort_key(item: LayoutItem) -> Tuple:
    sequence = parse_sequence(item.code)
    if sequence is None:
        # Equal keys: sorted() is stable, so unparsable codes keep their input order
        return (1, UNPARSABLE_SEQUENCE, 0.0, "")
    return (0, sequence, item.width, item.code)


def sort_items(items: Iterable[LayoutItem]) -> List[LayoutItem]:
    return sorted(items, key=sort_key)


def segment(items: Iterable[LayoutItem], max_allowed_width: float = config.MAX_ALLOWED_WIDTH) -> List[Segment]:
    """
    Split items, in the given order, into segments no wider than max_allowed_width.

    Args:
        items: Items already in layout order (see sort_items)
        max_allowed_width: Physical substrate width in inches

    Returns:
        Segments whose concatenated items equal the input order
    """
    if max_allowed_width is None or max_allowed_width <= 0:
        raise ValueError(f"max_allowed_width must be greater than 0, got {max_allowed_width}")

    segments: List[Segment] = []
    current_segment: List[LayoutItem] = []
    current_width = 0.0

    for item in items:
        if item.width > max_allowed_width:
            if current_segment:
                segments.append(Segment(current_segment, max_allowed_width))
            segments.append(Segment([item], max_allowed_width, oversized=True))
            current_segment = []
            current_width = 0.0
        elif round_width(current_width + item.width) > max_allowed_width:
            segments.append(Segment(current_segment, max_allowed_width))
            current_segment = [item]
            current_width = item.width
        else:
            current_segment.append(item)
            current_width = round_width(current_width + item.width)

    if current_segment:
        segments.append(Segment(current_segment, max_allowed_width))

    logger.debug(f"Segmented into {len(segments)} segment(s) of max {max_allowed_width:g}\"")
    return segments


def display_width(
    width: float,
    max_allowed_width: float = config.MAX_ALLOWED_WIDTH,
    canvas_width: float = 100.0,
    min_display_width: float = 4.0,
) -> float:
    """
    Drawing size for one cut, proportional to the substrate and clamped.

    Presentation only, never used for packing.
    """
    proportional = (width / max_allowed_width) * canvas_width
    return round(min(max(proportional, min_display_width), canvas_width), 2)


def truncate_name(name: str, max_length: int = 12) -> str:
    if len(name) <= max_length:
        return name
    return name[:max_length - 1] + "…"


def layout_items(
    raw_items: Iterable[Dict[str, Any]],
    max_allowed_width: float = config.MAX_ALLOWED_WIDTH,
    client_name_length: int = 12,
    canvas_width: float = 100.0,
) -> Dict[str, Any]:
    """
    Sort, segment and annotate cut rolls for the print collaborator.

    Returns:
        Dict with per-segment items (display strings included) and totals
    """
    items = sort_items(LayoutItem.from_dict(raw) for raw in raw_items)
    segments = segment(items, max_allowed_width)

    rendered = []
    for index, seg in enumerate(segments, 1):
        entry = seg.to_dict()
        entry["segment_number"] = index
        entry["items"] = [
            {
                "code": item.code,
                "width": item.width,
                "width_label": f"{item.width:g}\"",
                "client_label": truncate_name(item.client_name, client_name_length),
                "display_width": display_width(item.width, max_allowed_width, canvas_width),
            }
            for item in seg.items
        ]
        rendered.append(entry)

    total_width = round_width(sum(item.width for item in items))
    return {
        "max_allowed_width": max_allowed_width,
        "segments": rendered,
        "summary": {
            "total_items": len(items),
            "total_segments": len(segments),
            "total_width": total_width,
            "total_waste": round_width(sum(seg.waste for seg in segments)),
        },
    }
