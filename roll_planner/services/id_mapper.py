from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging
import re

from .. import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegacyIdRecognizer:
    """
    One rule for spotting a historical jumbo identifier.

    kind is "prefix", "contains" or "regex".
    """
    kind: str
    value: str
    description: str = ""

    def matches(self, raw_id: str) -> bool:
        if self.kind == "prefix":
            return raw_id.startswith(self.value)
        if self.kind == "contains":
            return self.value in raw_id
        if self.kind == "regex":
            return re.fullmatch(self.value, raw_id) is not None
        raise ValueError(f"Unsupported recognizer kind: {self.kind}")


def default_recognizers() -> List[LegacyIdRecognizer]:
    recognizers = [
        LegacyIdRecognizer("prefix", prefix, f"Virtual jumbo barcodes ({prefix}...)")
        for prefix in config.LEGACY_JUMBO_PREFIXES
    ]
    recognizers.extend(
        LegacyIdRecognizer("contains", marker, f"Identifiers containing {marker}")
        for marker in config.LEGACY_JUMBO_MARKERS
    )
    recognizers.append(LegacyIdRecognizer("regex", r"[0-9A-F]{8}", "8 character uppercase hex tokens"))
    # Display labels handed back in a later batch get re-ranked, so they can never clash with one
    recognizers.append(LegacyIdRecognizer("regex", r"JR-\d{5}", "Earlier display labels (JR-00001)"))
    return recognizers


class SequentialIdMapper:
    """
    Maps opaque jumbo identifiers to readable labels for one report/print run.

    Format: JR-00001, JR-00002, ... assigned by rank among the distinct
    recognized identifiers of the batch, in sorted order. Canonical barcodes
    (JR_00001) and anything no recognizer claims are shown as they are.
    """

    UNGROUPED = "ungrouped"
    UNGROUPED_LABEL = "Ungrouped Items"
    STOCK_LABEL = "Cut Rolls from Stock"
    CANONICAL_PREFIX = "JR_"
    LABEL_PREFIX = "JR"

    def __init__(
        self,
        recognizers: Optional[Sequence[LegacyIdRecognizer]] = None,
        wastage_prefixes: Optional[Sequence[str]] = None,
    ):
        self.recognizers = list(recognizers) if recognizers is not None else default_recognizers()
        self.wastage_prefixes = tuple(wastage_prefixes if wastage_prefixes is not None else config.WASTAGE_BARCODE_PREFIXES)

    # ------------------------------------------------------------------
    # Jumbo labels
    # ------------------------------------------------------------------

    def is_legacy(self, raw_id: str) -> bool:
        return any(r.matches(raw_id) for r in self.recognizers)

    @classmethod
    def rank_label(cls, rank: int) -> str:
        return f"{cls.LABEL_PREFIX}-{rank + 1:05d}"

    def map_jumbo_ids(self, raw_ids: Iterable[Optional[str]]) -> Dict[str, str]:
        """
        Build the label for every distinct identifier in a batch.

        The mapping only depends on the set of identifiers, so the same batch
        in any order gives the same labels.

        Returns:
            Dict of raw identifier → display label (sentinel excluded)
        """
        distinct = sorted({raw for raw in raw_ids if raw and raw != self.UNGROUPED})

        # Only recognized ids are ranked, so mapping a batch of labels again is a no-op
        mapping = {raw_id: raw_id for raw_id in distinct}
        legacy = [
            raw_id for raw_id in distinct
            if not raw_id.startswith(self.CANONICAL_PREFIX) and self.is_legacy(raw_id)
        ]
        for rank, raw_id in enumerate(legacy):
            mapping[raw_id] = self.rank_label(rank)

        logger.debug(f"Mapped {len(mapping)} jumbo ids: {mapping}")
        return mapping

    def map_jumbo_id(self, raw_id: Optional[str], batch: Iterable[Optional[str]]) -> str:
        if not raw_id:
            return "Unknown"
        if raw_id == self.UNGROUPED:
            return self.UNGROUPED_LABEL
        return self.map_jumbo_ids(list(batch) + [raw_id])[raw_id]

    # ------------------------------------------------------------------
    # Set and sentinel labels
    # ------------------------------------------------------------------

    @staticmethod
    def set_label(position: int) -> str:
        """Set label from its 1-based position within its jumbo."""
        if isinstance(position, bool) or not isinstance(position, int) or position < 1:
            raise ValueError(f"Set position must be a positive integer, got {position!r}")
        return f"Set #{position}"

    def is_wastage_barcode(self, barcode: Optional[str]) -> bool:
        return bool(barcode) and barcode.startswith(self.wastage_prefixes)

    def ungrouped_label(self, barcodes: Iterable[Optional[str]]) -> str:
        barcodes = list(barcodes)
        if barcodes and all(self.is_wastage_barcode(b) for b in barcodes):
            return self.STOCK_LABEL
        return self.UNGROUPED_LABEL

    # ------------------------------------------------------------------
    # Report grouping
    # ------------------------------------------------------------------

    def group_by_jumbo(
        self,
        items: Iterable[Dict[str, Any]],
        jumbo_key: str = "jumbo_roll_frontend_id",
        set_key: str = "parent_118_roll_id",
        barcode_key: str = "barcode_id",
    ) -> List[Dict[str, Any]]:
        """
        Group flat production items by jumbo, then by set, with display labels.

        Groups and sets keep the order in which they first appear. Items with
        no jumbo go to the ungrouped bucket.
        """
        items = list(items)
        raw_ids = [item.get(jumbo_key) or self.UNGROUPED for item in items]
        labels = self.map_jumbo_ids(raw_ids)

        groups: Dict[str, Dict[str, Any]] = {}
        for raw_id, item in zip(raw_ids, items):
            group = groups.get(raw_id)
            if group is None:
                group = {"jumbo_id": raw_id, "display_id": labels.get(raw_id), "sets": {}, "rolls": []}
                groups[raw_id] = group
            group["rolls"].append(item)
            group["sets"].setdefault(item.get(set_key) or "", []).append(item)

        result = []
        for raw_id, group in groups.items():
            if raw_id == self.UNGROUPED:
                group["display_id"] = self.ungrouped_label(r.get(barcode_key) for r in group["rolls"])
            group["sets"] = [
                {"set_id": set_id or None, "display_id": self.set_label(position), "rolls": rolls}
                for position, (set_id, rolls) in enumerate(group["sets"].items(), 1)
            ]
            result.append(group)
        return result
