import uuid
from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Optional


def new_id(prefix: str) -> str:
    """Opaque arena id, e.g. ``jumbo-3f2a9c1d0b7e``"""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def round_width(value: float) -> float:
    # Widths are entered to a tenth of an inch; keeps float sums comparable
    return round(float(value), 4)


# Status Enums
class CapacityState(str, PyEnum):
    DRAFT = "draft"
    COMMITTED = "committed"

class CutRollSource(str, PyEnum):
    MANUAL = "manual"
    ALGORITHM = "algorithm"


# ============================================================================
# SESSION RECORDS - Arena entries, cross-referenced by id
# ============================================================================

@dataclass
class PaperSpec:
    id: str
    gsm: int
    bf: float  # Brightness Factor
    shade: str
    paper_id: Optional[str] = None  # Paper master id this spec was resolved from

    @property
    def key(self):
        return (self.gsm, float(self.bf), self.shade.strip().lower())

    @property
    def label(self) -> str:
        return f"{self.gsm}gsm, {self.bf}bf, {self.shade}"


@dataclass
class JumboRoll:
    id: str
    paper_spec_id: str
    jumbo_number: int  # 1, 2, 3, etc. per paper spec


@dataclass
class RollSet:
    """A 118" roll within a jumbo. Usable width is the current planning width."""
    id: str
    jumbo_roll_id: str
    set_number: int  # 1, 2 or 3 at creation time


@dataclass
class CutRoll:
    id: str
    roll_set_id: str
    width_inches: float
    quantity: int
    client_id: str
    order_source: Optional[str] = None  # e.g. "ORD-00010-26"
    source: CutRollSource = CutRollSource.MANUAL

    @property
    def total_width(self) -> float:
        return self.width_inches * self.quantity


# ============================================================================
# DERIVED RECORDS - Never created directly by a user
# ============================================================================

@dataclass(frozen=True)
class WastageAllocation:
    """
    Reportable trim left on a physical 118" roll after all of its cuts.
    Only valid within the reportable range (9-21 inches by default).
    """
    width_inches: float
    paper_id: str
    gsm: Optional[int]
    bf: Optional[float]
    shade: Optional[str]
    individual_roll_number: Optional[int]
    source_plan_id: str
    notes: str = ""
    source_jumbo_roll_id: Optional[str] = None  # Set by the plan service

    def to_dict(self) -> dict:
        return {
            "width_inches": self.width_inches,
            "paper_id": self.paper_id,
            "gsm": self.gsm,
            "bf": self.bf,
            "shade": self.shade,
            "individual_roll_number": self.individual_roll_number,
            "source_plan_id": self.source_plan_id,
            "source_jumbo_roll_id": self.source_jumbo_roll_id,
            "notes": self.notes,
        }
