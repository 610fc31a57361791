from typing import Any, Dict, List, Optional
import logging

from ..exceptions import CommitRejected, EmptyPlan, PlanNotCommitted
from .capacity_model import CapacityModel
from .external_clients import MasterDataCache
from .hierarchy_store import HierarchyStore

logger = logging.getLogger(__name__)


class PlanPayloadBuilder:
    """
    Turns the validated session tree into the plan service request.

    Empty nodes are pruned bottom-up: a set without cut rolls, then a jumbo
    whose sets were all dropped, then a paper spec whose jumbos were all
    dropped. Client ids are resolved to company names here.
    """

    def __init__(self, store: HierarchyStore, capacity: CapacityModel, masters: Optional[MasterDataCache] = None):
        self.store = store
        self.capacity = capacity
        self.masters = masters or MasterDataCache()

    def build_paper_specs(self) -> List[Dict[str, Any]]:
        paper_specs = []
        for spec in self.store.paper_specs():
            jumbo_rolls = []
            for jumbo in self.store.jumbos_for_spec(spec.id):
                sets = []
                for roll_set in self.store.sets_for_jumbo(jumbo.id):
                    cuts = self.store.cuts_for_set(roll_set.id)
                    if not cuts:
                        continue
                    sets.append({
                        "set_number": roll_set.set_number,
                        "used_width": self.store.validator.used_width(cuts),
                        "cut_rolls": [
                            {
                                "width_inches": cut.width_inches,
                                "quantity": cut.quantity,
                                "client_id": cut.client_id,
                                "client_name": self.masters.client_name(cut.client_id),
                                "order_source": cut.order_source,
                                "source": cut.source.value,
                            }
                            for cut in cuts
                        ],
                    })
                if sets:
                    jumbo_rolls.append({"jumbo_number": jumbo.jumbo_number, "sets": sets})
            if jumbo_rolls:
                paper_specs.append({
                    "gsm": spec.gsm,
                    "bf": spec.bf,
                    "shade": spec.shade,
                    "paper_id": spec.paper_id,
                    "jumbo_rolls": jumbo_rolls,
                })
        return paper_specs

    def build(self, created_by_id: str) -> Dict[str, Any]:
        """
        Build the submission payload.

        Raises:
            PlanNotCommitted: wastage allowance still in draft
            EmptyPlan: nothing left after pruning
            CommitRejected: a set is over the applied width (should never happen)
        """
        if not self.capacity.is_committed:
            raise PlanNotCommitted()

        violations = self.store.validate_all()
        if violations:
            raise CommitRejected(self.capacity.planning_width, violations)

        paper_specs = self.build_paper_specs()
        if not paper_specs:
            raise EmptyPlan()

        total_cuts = sum(
            len(s["cut_rolls"]) for p in paper_specs for j in p["jumbo_rolls"] for s in j["sets"]
        )
        logger.info(
            f"📦 PAYLOAD: {len(paper_specs)} paper specs, {total_cuts} cut rolls, "
            f"planning width {self.capacity.planning_width:g}\""
        )

        return {
            "wastage": self.capacity.allowance,
            "planning_width": self.capacity.planning_width,
            "created_by_id": created_by_id,
            "paper_specs": paper_specs,
        }
