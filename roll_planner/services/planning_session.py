"""
Planning Session - One user's interactive plan, from first edit to submission.

Ties the capacity model, hierarchy store and master data together and owns the
single hand-off to the plan service. A failed submission leaves the tree as it
was; a successful one resets it.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Optional
import logging
import threading
import uuid

from ..exceptions import InvalidCutRoll, NodeNotFound, PlannerError
from ..models import CutRoll, JumboRoll, PaperSpec, RollSet
from .capacity_model import CapacityModel
from .external_clients import MasterDataCache, MasterDataClient, PlanServiceClient
from .hierarchy_store import HierarchyStore
from .plan_payload_builder import PlanPayloadBuilder
from .wastage_calculator import WastageCalculator

logger = logging.getLogger(__name__)


def production_cut_rolls(production_hierarchy: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Flatten ``production_hierarchy[].cut_rolls`` as echoed by the plan service."""
    cut_rolls = []
    for jumbo_group in production_hierarchy or []:
        rolls = jumbo_group.get("cut_rolls") if isinstance(jumbo_group, dict) else None
        if isinstance(rolls, list):
            cut_rolls.extend(rolls)
    return cut_rolls


class PlanningSession:

    def __init__(
        self,
        created_by_id: str,
        capacity: Optional[CapacityModel] = None,
        masters: Optional[MasterDataCache] = None,
        plan_client: Optional[PlanServiceClient] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.created_by_id = created_by_id
        self.capacity = capacity or CapacityModel()
        self.store = HierarchyStore(self.capacity)
        self.masters = masters or MasterDataCache()
        self.plan_client = plan_client or PlanServiceClient()
        self.last_submission: Optional[Dict[str, Any]] = None
        # Routes run in a threadpool; every write and the submit hand-off hold this
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Wastage allowance
    # ------------------------------------------------------------------

    def propose_allowance(self, value: float) -> Dict[str, Any]:
        with self._lock:
            self.capacity.propose_allowance(value)
            return self.capacity.to_dict()

    def commit_allowance(self) -> Dict[str, Any]:
        with self._lock:
            self.capacity.commit_allowance(self.store.set_usage())
            return self.capacity.to_dict()

    def reopen_allowance(self) -> Dict[str, Any]:
        with self._lock:
            self.capacity.reopen()
            return self.capacity.to_dict()

    # ------------------------------------------------------------------
    # Tree edits
    # ------------------------------------------------------------------

    def add_paper_spec(
        self,
        paper_id: Optional[str] = None,
        gsm: Optional[int] = None,
        bf: Optional[float] = None,
        shade: Optional[str] = None,
    ) -> PaperSpec:
        if paper_id:
            paper = self.masters.get_paper(paper_id)
            gsm, bf, shade = paper.gsm, paper.bf, paper.shade
            paper_id = paper.id
        elif gsm is None or bf is None or not shade:
            raise PlannerError("Please select a paper specification")
        with self._lock:
            return self.store.add_paper_spec(gsm, bf, shade, paper_id=paper_id)

    def add_jumbo_roll(self, spec_id: str) -> JumboRoll:
        with self._lock:
            return self.store.add_jumbo_roll(spec_id)

    def add_set(self, jumbo_id: str) -> RollSet:
        with self._lock:
            return self.store.add_set(jumbo_id)

    def add_or_edit_cut_roll(self, set_id: str, width: float, quantity: int, client_id: str, **kwargs) -> CutRoll:
        if self.masters.loaded and self.masters.clients and not self.masters.has_client(client_id):
            raise InvalidCutRoll(f"Unknown client: {client_id}")
        # Capacity check and write must not interleave with another write
        with self._lock:
            return self.store.add_or_edit_cut_roll(set_id, width, quantity, client_id, **kwargs)

    def delete_paper_spec(self, spec_id: str) -> Dict[str, int]:
        with self._lock:
            return self.store.delete_paper_spec(spec_id)

    def delete_jumbo_roll(self, jumbo_id: str) -> Dict[str, int]:
        with self._lock:
            return self.store.delete_jumbo_roll(jumbo_id)

    def delete_set(self, set_id: str) -> Dict[str, int]:
        with self._lock:
            return self.store.delete_set(set_id)

    def delete_cut_roll(self, cut_id: str) -> Dict[str, int]:
        with self._lock:
            return self.store.delete_cut_roll(cut_id)

    def import_optimizer_rolls(self, rolls: List[Dict[str, Any]]) -> Dict[str, Any]:
        with self._lock:
            return self.store.load_optimizer_rolls(rolls)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def tree(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "planning_width": self.capacity.planning_width,
                "counts": self.store.counts(),
                "paper_specs": self.store.snapshot(),
            }

    def jumbo_view(self, jumbo_id: str) -> Dict[str, Any]:
        with self._lock:
            data = asdict(self.store.get_jumbo_roll(jumbo_id))
            data["sets"] = [asdict(s) for s in self.store.sets_for_jumbo(jumbo_id)]
            return data

    def set_view(self, set_id: str) -> Dict[str, Any]:
        with self._lock:
            roll_set = self.store.get_set(set_id)
            return {
                **asdict(roll_set),
                "used_width": self.store.used_width(set_id),
                "remaining_width": self.store.remaining_width(set_id),
                "efficiency": self.store.efficiency(set_id),
                "cut_rolls": [asdict(c) for c in self.store.cuts_for_set(set_id)],
            }

    def remaining_width(self, set_id: str) -> float:
        with self._lock:
            return self.store.remaining_width(set_id)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def build_payload(self) -> Dict[str, Any]:
        with self._lock:
            return PlanPayloadBuilder(self.store, self.capacity, self.masters).build(self.created_by_id)

    def submit(self) -> Dict[str, Any]:
        """
        Send the plan to the plan service, once.

        The lock is held across the POST, so a second submit waits and is then
        refused by the reset session instead of posting the plan again.

        Raises:
            PlanNotCommitted / EmptyPlan: before any external call
            SubmissionFailure: upstream rejection, tree left untouched
        """
        with self._lock:
            payload = self.build_payload()
            result = self.plan_client.create_plan(payload)

            submission = {
                "plan_id": result.get("plan_id") or result.get("id"),
                "production_hierarchy": result.get("production_hierarchy", []),
                "summary": result.get("summary", {}),
            }
            self.last_submission = submission
            self.reset()
        logger.info(f"🚀 Session {self.id} submitted plan {submission['plan_id']}")
        return submission

    def submission_wastage(self, calculator: Optional[WastageCalculator] = None) -> Dict[str, Any]:
        """Reportable wastage from the hierarchy echoed by the last submission."""
        if self.last_submission is None:
            raise NodeNotFound("Submitted plan", self.id)
        calculator = calculator or WastageCalculator()
        result = calculator.extract(
            production_cut_rolls(self.last_submission["production_hierarchy"]),
            str(self.last_submission["plan_id"] or ""),
        )
        report = result.to_dict()
        report["validation"] = calculator.validate(result.wastage_items)
        return report

    def reset(self) -> None:
        with self._lock:
            self.store.clear()
            self.capacity.reopen()

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "session_id": self.id,
                "created_by_id": self.created_by_id,
                "capacity": self.capacity.to_dict(),
                "counts": self.store.counts(),
                "paper_specs": self.store.snapshot(),
            }


class SessionRegistry:
    """In-process sessions keyed by id."""

    def __init__(self):
        self._sessions: Dict[str, PlanningSession] = {}

    def create(
        self,
        created_by_id: str,
        wastage: Optional[float] = None,
        load_masters: bool = True,
        master_client: Optional[MasterDataClient] = None,
    ) -> PlanningSession:
        capacity = CapacityModel() if wastage is None else CapacityModel(allowance=wastage)
        masters = MasterDataCache()
        if load_masters:
            masters.load(master_client or MasterDataClient())
        session = PlanningSession(created_by_id, capacity=capacity, masters=masters)
        self._sessions[session.id] = session
        logger.info(f"🆕 Planning session {session.id} for user {created_by_id}")
        return session

    def get(self, session_id: str) -> PlanningSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NodeNotFound("Planning session", session_id)
        return session

    def drop(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry()
