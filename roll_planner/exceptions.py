"""
Planner error types.

Every error here is recoverable at the session level; the API layer maps them
to HTTP responses in one place (see main.py).
"""
from typing import Any, Dict, List, Optional


class PlannerError(Exception):
    """Base exception for planning session operations."""
    code = "planner_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class NodeNotFound(PlannerError):
    """Raised when an id does not resolve to a node of the expected kind."""
    code = "not_found"
    status_code = 404

    def __init__(self, kind: str, node_id: str):
        super().__init__(f"{kind} not found: '{node_id}'")
        self.kind = kind
        self.node_id = node_id


class DuplicatePaperSpec(PlannerError):
    code = "duplicate_paper_spec"
    status_code = 409

    def __init__(self, gsm: int, bf: float, shade: str):
        super().__init__(f"Paper specification {gsm}gsm, {bf}bf, {shade} is already added")
        self.gsm = gsm
        self.bf = bf
        self.shade = shade


class InvalidCutRoll(PlannerError):
    """Raised when a cut roll write carries malformed fields."""
    code = "invalid_cut_roll"
    status_code = 422


class CapacityExceeded(PlannerError):
    """Raised when a cut roll does not fit into its set's planning width."""
    code = "capacity_exceeded"
    status_code = 409

    def __init__(self, message: str, set_id: str, requested: float, available: float, planning_width: float):
        super().__init__(message)
        self.set_id = set_id
        self.requested = requested
        self.available = available
        self.planning_width = planning_width

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "set_id": self.set_id,
            "requested": self.requested,
            "available": self.available,
            "planning_width": self.planning_width,
        })
        return data


class InvalidAllowance(PlannerError):
    code = "invalid_allowance"
    status_code = 422


class CommitRejected(PlannerError):
    """Raised when a new planning width would invalidate existing allocations."""
    code = "commit_rejected"
    status_code = 409

    def __init__(self, new_width: float, violations: List[Dict[str, Any]]):
        super().__init__(
            f"Cannot apply: {len(violations)} set(s) would exceed the new planning width of {new_width:g}\""
        )
        self.new_width = new_width
        self.violations = violations

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"new_width": self.new_width, "violations": self.violations})
        return data


class PlanNotCommitted(PlannerError):
    code = "plan_not_committed"
    status_code = 409

    def __init__(self, message: str = "Wastage allowance must be applied before submitting the plan"):
        super().__init__(message)


class EmptyPlan(PlannerError):
    code = "empty_plan"
    status_code = 422

    def __init__(self, message: str = "Plan has no cut rolls to submit"):
        super().__init__(message)


class WastageValidationError(PlannerError):
    """Raised with every wastage issue found, never just the first."""
    code = "wastage_invalid"
    status_code = 422

    def __init__(self, issues: List[Dict[str, Any]]):
        super().__init__(f"{len(issues)} wastage validation error(s)")
        self.issues = issues

    @property
    def errors(self) -> List[str]:
        return [issue["message"] for issue in self.issues]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["issues"] = self.issues
        return data


class MasterDataError(PlannerError):
    """Raised when a paper/client master lookup fails or returns bad data."""
    code = "master_data_error"
    status_code = 502


class SubmissionFailure(PlannerError):
    """Raised when the plan service rejects a submission. Detail is verbatim."""
    code = "submission_failed"
    status_code = 502

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.upstream_status = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["upstream_status"] = self.upstream_status
        return data
