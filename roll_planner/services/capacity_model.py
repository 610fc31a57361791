"""
Capacity Model - Planning width state machine

Planning width is derived from the wastage allowance:

    planning_width = clamp(base_width - allowance, floor_width, base_width)

The allowance is edited in two phases. A proposed value sits in DRAFT until it
is committed; commit is the only transition to COMMITTED and it is refused if
any existing set already uses more than the new width. Re-opening for edit
moves back to DRAFT without touching cut roll data.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from .. import config
from ..exceptions import CommitRejected, InvalidAllowance
from ..models import CapacityState, round_width

logger = logging.getLogger(__name__)


class CapacityModel:

    def __init__(
        self,
        base_width: float = config.BASE_ROLL_WIDTH,
        floor_width: float = config.FLOOR_PLANNING_WIDTH,
        allowance: float = config.DEFAULT_WASTAGE_ALLOWANCE,
        min_allowance: float = config.MIN_WASTAGE_ALLOWANCE,
        max_allowance: float = config.MAX_WASTAGE_ALLOWANCE,
    ):
        if floor_width > base_width:
            raise ValueError(f"Floor width {floor_width} exceeds base width {base_width}")
        self.base_width = float(base_width)
        self.floor_width = float(floor_width)
        self.min_allowance = float(min_allowance)
        self.max_allowance = float(max_allowance)

        self._check_allowance(allowance)
        # The applied value always exists; a new session starts in DRAFT with it
        self._allowance = float(allowance)
        self._draft_allowance = float(allowance)
        self._state = CapacityState.DRAFT

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> CapacityState:
        return self._state

    @property
    def is_committed(self) -> bool:
        return self._state == CapacityState.COMMITTED

    @property
    def allowance(self) -> float:
        return self._allowance

    @property
    def draft_allowance(self) -> float:
        return self._draft_allowance

    @property
    def planning_width(self) -> float:
        """Width governing allocation checks (the applied allowance)."""
        return self.width_for(self._allowance)

    @property
    def draft_planning_width(self) -> float:
        return self.width_for(self._draft_allowance)

    def width_for(self, allowance: float) -> float:
        calculated = self.base_width - float(allowance)
        return round_width(min(max(calculated, self.floor_width), self.base_width))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def propose_allowance(self, value: float) -> float:
        """
        Store a candidate allowance in DRAFT. No tree validation happens here.

        Returns:
            The planning width the draft would produce
        """
        self._check_allowance(value)
        if self._state == CapacityState.COMMITTED:
            self.reopen()
        self._draft_allowance = float(value)
        logger.info(f"📝 DRAFT: wastage allowance {value:g}\" → planning width {self.draft_planning_width:g}\"")
        return self.draft_planning_width

    def commit_allowance(self, set_usage: Iterable[Dict[str, Any]] = ()) -> float:
        """
        Apply the draft allowance after checking every existing set against it.

        Args:
            set_usage: One record per set with at least ``set_id`` and
                ``used_width``; extra keys are copied into violation reports.

        Returns:
            The new planning width

        Raises:
            CommitRejected: listing every set that would overflow. Nothing
                changes and the draft is kept.
        """
        new_width = self.draft_planning_width
        violations = self.find_violations(set_usage, new_width)

        if violations:
            logger.warning(
                f"❌ COMMIT REJECTED: {len(violations)} set(s) exceed new planning width {new_width:g}\""
            )
            raise CommitRejected(new_width, violations)

        self._allowance = self._draft_allowance
        self._state = CapacityState.COMMITTED
        logger.info(f"✅ COMMITTED: wastage {self._allowance:g}\", planning width is now {new_width:g}\"")
        return new_width

    def reopen(self) -> None:
        """COMMITTED → DRAFT. Cut roll data and the applied width are kept."""
        if self._state == CapacityState.COMMITTED:
            self._draft_allowance = self._allowance
        self._state = CapacityState.DRAFT

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def find_violations(set_usage: Iterable[Dict[str, Any]], width: float) -> List[Dict[str, Any]]:
        violations = []
        for usage in set_usage:
            used = round_width(usage.get("used_width", 0))
            if used > width:
                record = dict(usage)
                record["used_width"] = used
                record["new_width"] = width
                record["excess"] = round_width(used - width)
                violations.append(record)
        return violations

    def _check_allowance(self, value: Optional[float]) -> None:
        if value is None:
            raise InvalidAllowance("Wastage allowance is required")
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            raise InvalidAllowance(f"Wastage allowance must be a number, got {value!r}")
        if numeric != numeric or numeric < self.min_allowance or numeric > self.max_allowance:
            raise InvalidAllowance(
                f"Wastage allowance {value} outside range {self.min_allowance:g}-{self.max_allowance:g} inches"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "allowance": self._allowance,
            "draft_allowance": self._draft_allowance,
            "planning_width": self.planning_width,
            "draft_planning_width": self.draft_planning_width,
            "base_width": self.base_width,
            "floor_width": self.floor_width,
        }
