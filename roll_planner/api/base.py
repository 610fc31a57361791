from fastapi import Depends

from ..services.planning_session import PlanningSession, SessionRegistry, registry


def get_registry() -> SessionRegistry:
    return registry


def get_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)) -> PlanningSession:
    """Resolve the ``session_id`` path parameter; unknown ids become a 404 via NodeNotFound."""
    return sessions.get(session_id)
