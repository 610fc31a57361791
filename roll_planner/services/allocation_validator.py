from typing import Iterable, Optional
import logging

from ..exceptions import CapacityExceeded, InvalidCutRoll
from ..models import CutRoll, round_width
from .capacity_model import CapacityModel

logger = logging.getLogger(__name__)


class AllocationValidator:
    """
    Guards every cut roll write against the committed planning width.

    A set's committed width, sum(width x quantity) over its cut rolls, may never
    exceed the planning width. The check runs on write, never on read.
    """

    def __init__(self, capacity: CapacityModel):
        self.capacity = capacity

    @property
    def planning_width(self) -> float:
        return self.capacity.planning_width

    @staticmethod
    def validate_fields(width: float, quantity: int, client_id: Optional[str]) -> None:
        if width is None or isinstance(width, bool):
            raise InvalidCutRoll("Cut roll width is required")
        try:
            width = float(width)
        except (TypeError, ValueError):
            raise InvalidCutRoll(f"Cut roll width must be a number, got {width!r}")
        if not width > 0:
            raise InvalidCutRoll(f"Cut roll width must be greater than 0, got {width:g}")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidCutRoll(f"Cut roll quantity must be a whole number of at least 1, got {quantity!r}")
        if not client_id or not str(client_id).strip():
            raise InvalidCutRoll("Client is required for a cut roll")

    @staticmethod
    def used_width(cuts: Iterable[CutRoll], exclude_id: Optional[str] = None) -> float:
        return round_width(sum(cut.total_width for cut in cuts if cut.id != exclude_id))

    def check(
        self,
        set_id: str,
        width: float,
        quantity: int,
        cuts_in_set: Iterable[CutRoll],
        editing_id: Optional[str] = None,
    ) -> float:
        """
        Check that a cut roll fits into its set.

        Args:
            set_id: Target set
            width: Cut roll width in inches
            quantity: Number of rolls of this width
            cuts_in_set: Current cut rolls of the set
            editing_id: Cut roll being replaced, excluded from the used width

        Returns:
            Width left in the set after the write

        Raises:
            CapacityExceeded: with the exact width still available
        """
        planning_width = self.planning_width
        width = float(width)

        if width > planning_width:
            logger.warning(f"❌ CUT TOO WIDE: {width:g}\" > planning width {planning_width:g}\" (set {set_id})")
            raise CapacityExceeded(
                f"Cut roll width ({width:g}\") cannot exceed planning width ({planning_width:g}\")",
                set_id=set_id,
                requested=round_width(width * quantity),
                available=planning_width,
                planning_width=planning_width,
            )

        used_excluding_self = self.used_width(cuts_in_set, exclude_id=editing_id)
        needed = round_width(width * quantity)
        available = round_width(planning_width - used_excluding_self)

        if round_width(used_excluding_self + needed) > planning_width:
            logger.warning(
                f"❌ SET FULL: {width:g}\" x {quantity} ({needed:g}\") needs more than {available:g}\" left in set {set_id}"
            )
            raise CapacityExceeded(
                f"Cannot add {width:g}\" x {quantity} ({needed:g}\") - only {available:g}\" available",
                set_id=set_id,
                requested=needed,
                available=available,
                planning_width=planning_width,
            )

        return round_width(available - needed)
