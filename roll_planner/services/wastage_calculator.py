"""
Wastage calculation for production plans

Trim left on a 118" roll after all its cuts is reported as wastage inventory,
but only inside the reportable range (9-21 inches by default). Every cut roll
of a physical roll carries the same trim_left, so each roll is counted once.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import logging

from .. import config, schemas
from ..exceptions import WastageValidationError
from ..models import WastageAllocation, round_width

logger = logging.getLogger(__name__)

CutRollInput = Union[schemas.ProductionCutRoll, Dict[str, Any]]


@dataclass
class WastageCalculationResult:
    wastage_items: List[WastageAllocation] = field(default_factory=list)
    total_wastage_count: int = 0
    total_wastage_inches: float = 0.0
    wastage_by_paper: Dict[str, float] = field(default_factory=dict)

    def format_summary(self) -> str:
        if self.total_wastage_count == 0:
            return "No reportable wastage detected"
        paper_breakdown = ", ".join(f"{paper}: {inches:.1f}\"" for paper, inches in self.wastage_by_paper.items())
        return (
            f"{self.total_wastage_count} wastage items ({self.total_wastage_inches:.1f}\" total) - {paper_breakdown}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wastage_items": [item.to_dict() for item in self.wastage_items],
            "total_wastage_count": self.total_wastage_count,
            "total_wastage_inches": self.total_wastage_inches,
            "wastage_by_paper": dict(self.wastage_by_paper),
            "summary": self.format_summary(),
        }


class WastageCalculator:

    def __init__(
        self,
        min_width: float = config.MIN_REPORTABLE_WASTAGE,
        max_width: float = config.MAX_REPORTABLE_WASTAGE,
    ):
        self.min_width = min_width
        self.max_width = max_width

    def is_reportable(self, width: Optional[float]) -> bool:
        return width is not None and self.min_width <= width <= self.max_width

    def extract(self, cut_rolls: Iterable[CutRollInput], source_plan_id: str) -> WastageCalculationResult:
        """
        Derive wastage records from annotated cut rolls.

        Args:
            cut_rolls: Production cut rolls, ideally with individual_roll_number
                and trim_left
            source_plan_id: Plan the cut rolls belong to

        Returns:
            WastageCalculationResult with one record per reportable 118" roll
        """
        groups = self._group_by_roll(cut_rolls)
        result = WastageCalculationResult()

        for (roll_number, gsm, bf, shade), rolls in groups.items():
            # Trim is a property of the physical roll, not of a single cut
            trim_value = rolls[0].trim_left or 0
            if not trim_value:
                continue
            if not self.is_reportable(trim_value):
                logger.debug(f"Skipping trim {trim_value}\" on roll #{roll_number} - outside reportable range")
                continue

            roll_with_paper = next((r for r in rolls if r.paper_id), rolls[0])
            item = WastageAllocation(
                width_inches=float(trim_value),
                paper_id=roll_with_paper.paper_id or "",
                gsm=gsm,
                bf=bf,
                shade=shade,
                individual_roll_number=roll_number,
                source_plan_id=source_plan_id or "",
                notes=f"Trim waste from 118\" roll #{roll_number} ({len(rolls)} cut rolls)",
            )
            result.wastage_items.append(item)

            paper_key = f"{gsm}gsm {shade} BF{bf:g}" if bf is not None else f"{gsm}gsm {shade}"
            result.wastage_by_paper[paper_key] = round_width(result.wastage_by_paper.get(paper_key, 0) + trim_value)

        result.total_wastage_count = len(result.wastage_items)
        result.total_wastage_inches = round_width(sum(item.width_inches for item in result.wastage_items))

        logger.info(
            f"🗑️ WASTAGE CALCULATION: Found {result.total_wastage_count} wastage items "
            f"({self.min_width:g}-{self.max_width:g} inches) for plan {source_plan_id}"
        )
        return result

    def validate(self, wastage_data: Iterable[Union[WastageAllocation, Dict[str, Any]]]) -> Dict[str, Any]:
        """
        Check wastage records before they are sent on. Never stops at the first
        problem.

        Returns:
            Dict with ``valid``, ``errors`` (messages) and ``issues`` (structured)
        """
        issues: List[Dict[str, Any]] = []

        for index, item in enumerate(wastage_data, 1):
            if isinstance(item, WastageAllocation):
                item = item.to_dict()
            width = item.get("width_inches")

            if width is None:
                issues.append(self._issue(index, "MissingField", "width_inches", f"Item {index}: Missing width_inches"))
            else:
                if width < self.min_width:
                    issues.append(self._issue(
                        index, "OutOfRange", "width_inches",
                        f"Item {index}: Width {width:g}\" is below {self.min_width:g}\" minimum",
                    ))
                if width > self.max_width:
                    issues.append(self._issue(
                        index, "OutOfRange", "width_inches",
                        f"Item {index}: Width {width:g}\" exceeds {self.max_width:g}\" maximum",
                    ))

            if not item.get("paper_id"):
                issues.append(self._issue(index, "MissingField", "paper_id", f"Item {index}: Missing paper_id"))
            if not item.get("source_plan_id"):
                issues.append(self._issue(
                    index, "MissingField", "source_plan_id", f"Item {index}: Missing source_plan_id",
                ))

        return {
            "valid": not issues,
            "errors": [issue["message"] for issue in issues],
            "issues": issues,
        }

    def ensure_valid(self, wastage_data: Iterable[Union[WastageAllocation, Dict[str, Any]]]) -> None:
        report = self.validate(wastage_data)
        if not report["valid"]:
            logger.warning(f"❌ WASTAGE VALIDATION: {len(report['issues'])} issue(s)")
            raise WastageValidationError(report["issues"])

    # ------------------------------------------------------------------

    @staticmethod
    def _issue(index: int, kind: str, field_name: str, message: str) -> Dict[str, Any]:
        return {"item": index, "kind": kind, "field": field_name, "message": message}

    @staticmethod
    def _group_by_roll(
        cut_rolls: Iterable[CutRollInput],
    ) -> Dict[Tuple, List[schemas.ProductionCutRoll]]:
        groups: Dict[Tuple, List[schemas.ProductionCutRoll]] = {}
        for raw in cut_rolls:
            cut_roll = raw if isinstance(raw, schemas.ProductionCutRoll) else schemas.ProductionCutRoll.model_validate(raw)
            if not cut_roll.individual_roll_number:
                continue
            # Same roll number on two papers is two different physical rolls
            key = (cut_roll.individual_roll_number, cut_roll.gsm, cut_roll.bf, cut_roll.shade)
            groups.setdefault(key, []).append(cut_roll)
        return groups
