"""
Hierarchy Store - In-memory planning tree

Paper Spec → Jumbo Roll → Set (118" roll) → Cut Roll

Every node lives in an arena keyed by an opaque id and refers to its parent by
id. All mutation goes through the operations below so that the set width
invariant is checked in exactly one place (AllocationValidator).
"""

from typing import Any, Dict, Iterable, List, Optional
import logging
import math

from .. import config
from ..exceptions import DuplicatePaperSpec, NodeNotFound, PlannerError
from ..models import (
    CutRoll,
    CutRollSource,
    JumboRoll,
    PaperSpec,
    RollSet,
    new_id,
    round_width,
)
from .allocation_validator import AllocationValidator
from .capacity_model import CapacityModel

logger = logging.getLogger(__name__)


class HierarchyStore:

    def __init__(self, capacity: CapacityModel, sets_per_jumbo: int = config.SETS_PER_JUMBO):
        self.capacity = capacity
        self.validator = AllocationValidator(capacity)
        self.sets_per_jumbo = sets_per_jumbo

        self._paper_specs: Dict[str, PaperSpec] = {}
        self._jumbo_rolls: Dict[str, JumboRoll] = {}
        self._roll_sets: Dict[str, RollSet] = {}
        self._cut_rolls: Dict[str, CutRoll] = {}

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_paper_spec(self, spec_id: str) -> PaperSpec:
        spec = self._paper_specs.get(spec_id)
        if spec is None:
            raise NodeNotFound("Paper specification", spec_id)
        return spec

    def get_jumbo_roll(self, jumbo_id: str) -> JumboRoll:
        jumbo = self._jumbo_rolls.get(jumbo_id)
        if jumbo is None:
            raise NodeNotFound("Jumbo roll", jumbo_id)
        return jumbo

    def get_set(self, set_id: str) -> RollSet:
        roll_set = self._roll_sets.get(set_id)
        if roll_set is None:
            raise NodeNotFound("Roll set", set_id)
        return roll_set

    def get_cut_roll(self, cut_id: str) -> CutRoll:
        cut = self._cut_rolls.get(cut_id)
        if cut is None:
            raise NodeNotFound("Cut roll", cut_id)
        return cut

    def find_paper_spec(self, gsm: int, bf: float, shade: str) -> Optional[PaperSpec]:
        key = (int(gsm), float(bf), str(shade).strip().lower())
        for spec in self._paper_specs.values():
            if spec.key == key:
                return spec
        return None

    def paper_specs(self) -> List[PaperSpec]:
        return list(self._paper_specs.values())

    def jumbos_for_spec(self, spec_id: str) -> List[JumboRoll]:
        jumbos = [j for j in self._jumbo_rolls.values() if j.paper_spec_id == spec_id]
        return sorted(jumbos, key=lambda j: j.jumbo_number)

    def sets_for_jumbo(self, jumbo_id: str) -> List[RollSet]:
        sets = [s for s in self._roll_sets.values() if s.jumbo_roll_id == jumbo_id]
        return sorted(sets, key=lambda s: s.set_number)

    def cuts_for_set(self, set_id: str) -> List[CutRoll]:
        return [c for c in self._cut_rolls.values() if c.roll_set_id == set_id]

    def all_sets(self) -> List[RollSet]:
        return list(self._roll_sets.values())

    def all_cut_rolls(self) -> List[CutRoll]:
        return list(self._cut_rolls.values())

    @property
    def is_empty(self) -> bool:
        return not self._paper_specs

    def counts(self) -> Dict[str, int]:
        return {
            "paper_specs": len(self._paper_specs),
            "jumbo_rolls": len(self._jumbo_rolls),
            "sets": len(self._roll_sets),
            "cut_rolls": len(self._cut_rolls),
        }

    # ========================================================================
    # WIDTH ACCOUNTING
    # ========================================================================

    def used_width(self, set_id: str) -> float:
        self.get_set(set_id)
        return self.validator.used_width(self.cuts_for_set(set_id))

    def remaining_width(self, set_id: str) -> float:
        return round_width(self.capacity.planning_width - self.used_width(set_id))

    def efficiency(self, set_id: str) -> float:
        used = self.used_width(set_id)
        if used == 0:
            return 0.0
        return used / self.capacity.planning_width

    def total_cuts_for_spec(self, spec_id: str) -> int:
        return sum(
            len(self.cuts_for_set(s.id))
            for j in self.jumbos_for_spec(spec_id)
            for s in self.sets_for_jumbo(j.id)
        )

    def total_sets_for_spec(self, spec_id: str) -> int:
        return sum(len(self.sets_for_jumbo(j.id)) for j in self.jumbos_for_spec(spec_id))

    def set_usage(self) -> List[Dict[str, Any]]:
        """One usage record per set, in the shape CapacityModel expects."""
        usage = []
        for spec in self._paper_specs.values():
            for jumbo in self.jumbos_for_spec(spec.id):
                for roll_set in self.sets_for_jumbo(jumbo.id):
                    usage.append({
                        "set_id": roll_set.id,
                        "set_number": roll_set.set_number,
                        "jumbo_roll_id": jumbo.id,
                        "jumbo_number": jumbo.jumbo_number,
                        "paper_spec": spec.label,
                        "used_width": self.validator.used_width(self.cuts_for_set(roll_set.id)),
                    })
        return usage

    def validate_all(self) -> List[Dict[str, Any]]:
        """Every set currently over the applied planning width (normally none)."""
        return CapacityModel.find_violations(self.set_usage(), self.capacity.planning_width)

    # ========================================================================
    # CREATE / EDIT
    # ========================================================================

    def add_paper_spec(self, gsm: int, bf: float, shade: str, paper_id: Optional[str] = None) -> PaperSpec:
        if self.find_paper_spec(gsm, bf, shade) is not None:
            raise DuplicatePaperSpec(gsm, bf, shade)

        spec = PaperSpec(id=new_id("paper"), gsm=int(gsm), bf=float(bf), shade=shade, paper_id=paper_id)
        self._paper_specs[spec.id] = spec
        logger.info(f"✅ Added paper spec {spec.label}")
        return spec

    def add_jumbo_roll(self, spec_id: str) -> JumboRoll:
        """Create the next jumbo for a spec together with its default sets."""
        self.get_paper_spec(spec_id)
        jumbo_number = len(self.jumbos_for_spec(spec_id)) + 1
        return self._create_jumbo(spec_id, jumbo_number)

    def add_set(self, jumbo_id: str) -> RollSet:
        self.get_jumbo_roll(jumbo_id)
        existing = [s.set_number for s in self.sets_for_jumbo(jumbo_id)]
        roll_set = RollSet(id=new_id("rollset"), jumbo_roll_id=jumbo_id, set_number=max(existing, default=0) + 1)
        self._roll_sets[roll_set.id] = roll_set
        return roll_set

    def add_or_edit_cut_roll(
        self,
        set_id: str,
        width: float,
        quantity: int,
        client_id: str,
        editing_id: Optional[str] = None,
        order_source: Optional[str] = None,
        source: CutRollSource = CutRollSource.MANUAL,
    ) -> CutRoll:
        """
        Insert a cut roll into a set, or replace an existing one.

        Raises:
            InvalidCutRoll: malformed width/quantity/client
            CapacityExceeded: the set cannot take the extra width
            NodeNotFound: unknown set or cut roll
        """
        self.get_set(set_id)
        existing = self.get_cut_roll(editing_id) if editing_id else None

        self.validator.validate_fields(width, quantity, client_id)
        width = float(width)
        self.validator.check(set_id, width, quantity, self.cuts_for_set(set_id), editing_id=editing_id)

        if existing is not None:
            existing.roll_set_id = set_id
            existing.width_inches = width
            existing.quantity = quantity
            existing.client_id = client_id
            existing.order_source = order_source
            logger.info(f"✏️ Updated cut roll {existing.id}: {width:g}\" x {quantity}")
            return existing

        cut = CutRoll(
            id=new_id("cut"),
            roll_set_id=set_id,
            width_inches=width,
            quantity=quantity,
            client_id=client_id,
            order_source=order_source,
            source=source,
        )
        self._cut_rolls[cut.id] = cut
        logger.info(f"✅ Added {width:g}\" x {quantity} = {cut.total_width:g}\" to set {set_id}")
        return cut

    # ========================================================================
    # CASCADE DELETE
    # ========================================================================

    def delete_cut_roll(self, cut_id: str) -> Dict[str, int]:
        self.get_cut_roll(cut_id)
        del self._cut_rolls[cut_id]
        return {"cut_rolls": 1}

    def delete_set(self, set_id: str) -> Dict[str, int]:
        self.get_set(set_id)
        removed_cuts = self._drop_cuts_for_sets({set_id})
        del self._roll_sets[set_id]
        return {"sets": 1, "cut_rolls": removed_cuts}

    def delete_jumbo_roll(self, jumbo_id: str) -> Dict[str, int]:
        self.get_jumbo_roll(jumbo_id)
        set_ids = {s.id for s in self.sets_for_jumbo(jumbo_id)}
        removed_cuts = self._drop_cuts_for_sets(set_ids)
        for set_id in set_ids:
            del self._roll_sets[set_id]
        del self._jumbo_rolls[jumbo_id]
        logger.info(f"🗑️ Deleted jumbo roll {jumbo_id} ({len(set_ids)} sets, {removed_cuts} cut rolls)")
        return {"jumbo_rolls": 1, "sets": len(set_ids), "cut_rolls": removed_cuts}

    def delete_paper_spec(self, spec_id: str) -> Dict[str, int]:
        self.get_paper_spec(spec_id)
        removed = {"paper_specs": 1, "jumbo_rolls": 0, "sets": 0, "cut_rolls": 0}
        for jumbo in self.jumbos_for_spec(spec_id):
            result = self.delete_jumbo_roll(jumbo.id)
            for key, value in result.items():
                removed[key] += value
        del self._paper_specs[spec_id]
        logger.info(f"🗑️ Deleted paper spec {spec_id}: {removed}")
        return removed

    def clear(self) -> None:
        self._cut_rolls.clear()
        self._roll_sets.clear()
        self._jumbo_rolls.clear()
        self._paper_specs.clear()

    # ========================================================================
    # IMPORT FROM OPTIMIZER OUTPUT
    # ========================================================================

    def load_optimizer_rolls(self, rolls: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Place a flat list of optimizer cut rolls into the tree.

        Roll numbers map onto jumbos of three sets each: roll #n goes into
        jumbo ceil(n / 3), set ((n - 1) % 3) + 1. Every placement goes through
        the same capacity check as a manual edit; rolls that do not fit are
        returned as orphaned instead of being written.

        Returns:
            Dict with ``placed`` cut roll ids and ``orphaned`` roll records
        """
        placed = []
        orphaned = []
        created_specs = []

        for roll in rolls:
            try:
                gsm = int(roll["gsm"])
                bf = float(roll["bf"])
                shade = str(roll["shade"])
            except (KeyError, TypeError, ValueError):
                orphaned.append({**roll, "reason": "Missing paper specification"})
                continue

            try:
                roll_number = int(roll.get("individual_roll_number") or 1)
                quantity = int(roll.get("quantity") or 1)
                if roll_number < 1:
                    raise ValueError(roll_number)
            except (TypeError, ValueError):
                orphaned.append({**roll, "reason": "Invalid roll number or quantity"})
                continue

            spec = self.find_paper_spec(gsm, bf, shade)
            if spec is None:
                spec = self.add_paper_spec(gsm, bf, shade, paper_id=roll.get("paper_id"))
                created_specs.append(spec.id)

            jumbo_number = math.ceil(roll_number / self.sets_per_jumbo)
            set_number = ((roll_number - 1) % self.sets_per_jumbo) + 1

            jumbo = self._ensure_jumbo(spec.id, jumbo_number)
            roll_set = next((s for s in self.sets_for_jumbo(jumbo.id) if s.set_number == set_number), None)
            if roll_set is None:
                orphaned.append({**roll, "reason": f"Set #{set_number} of jumbo #{jumbo_number} is not available"})
                continue

            try:
                cut = self.add_or_edit_cut_roll(
                    roll_set.id,
                    roll.get("width_inches", roll.get("width")),
                    quantity,
                    roll.get("client_id") or roll.get("client_name"),
                    order_source=roll.get("order_id"),
                    source=CutRollSource.ALGORITHM,
                )
            except PlannerError as e:
                orphaned.append({**roll, "reason": e.message})
                continue
            placed.append(cut.id)

        # Specs this import created but could not fill are not kept
        for spec_id in created_specs:
            if self.total_cuts_for_spec(spec_id) == 0:
                self.delete_paper_spec(spec_id)

        logger.info(f"📥 IMPORT: placed {len(placed)} cut rolls, {len(orphaned)} orphaned")
        return {"placed": placed, "orphaned": orphaned}

    # ========================================================================
    # VIEWS
    # ========================================================================

    def snapshot(self) -> List[Dict[str, Any]]:
        """Nested view of the tree with width accounting per set."""
        planning_width = self.capacity.planning_width
        tree = []
        for spec in self._paper_specs.values():
            jumbos = []
            for jumbo in self.jumbos_for_spec(spec.id):
                sets = []
                for roll_set in self.sets_for_jumbo(jumbo.id):
                    cuts = self.cuts_for_set(roll_set.id)
                    used = self.validator.used_width(cuts)
                    sets.append({
                        "id": roll_set.id,
                        "set_number": roll_set.set_number,
                        "used_width": used,
                        "remaining_width": round_width(planning_width - used),
                        "efficiency": (used / planning_width) if used else 0.0,
                        "cut_rolls": [
                            {
                                "id": c.id,
                                "width_inches": c.width_inches,
                                "quantity": c.quantity,
                                "client_id": c.client_id,
                                "order_source": c.order_source,
                                "source": c.source.value,
                            }
                            for c in cuts
                        ],
                    })
                jumbos.append({"id": jumbo.id, "jumbo_number": jumbo.jumbo_number, "sets": sets})
            tree.append({
                "id": spec.id,
                "gsm": spec.gsm,
                "bf": spec.bf,
                "shade": spec.shade,
                "paper_id": spec.paper_id,
                "total_sets": self.total_sets_for_spec(spec.id),
                "total_cuts": self.total_cuts_for_spec(spec.id),
                "jumbo_rolls": jumbos,
            })
        return tree

    # ------------------------------------------------------------------

    def _create_jumbo(self, spec_id: str, jumbo_number: int) -> JumboRoll:
        jumbo = JumboRoll(id=new_id("jumbo"), paper_spec_id=spec_id, jumbo_number=jumbo_number)
        self._jumbo_rolls[jumbo.id] = jumbo

        for set_number in range(1, self.sets_per_jumbo + 1):
            roll_set = RollSet(id=new_id("rollset"), jumbo_roll_id=jumbo.id, set_number=set_number)
            self._roll_sets[roll_set.id] = roll_set

        logger.info(f"✅ Jumbo Roll #{jumbo_number} added with {self.sets_per_jumbo} sets")
        return jumbo

    def _ensure_jumbo(self, spec_id: str, jumbo_number: int) -> JumboRoll:
        # Create each missing number up to the target, keeping numbers unique per spec
        existing = {j.jumbo_number: j for j in self.jumbos_for_spec(spec_id)}
        for number in range(1, jumbo_number + 1):
            if number not in existing:
                existing[number] = self._create_jumbo(spec_id, number)
        return existing[jumbo_number]

    def _drop_cuts_for_sets(self, set_ids: set) -> int:
        doomed = [cut_id for cut_id, cut in self._cut_rolls.items() if cut.roll_set_id in set_ids]
        for cut_id in doomed:
            del self._cut_rolls[cut_id]
        return len(doomed)
