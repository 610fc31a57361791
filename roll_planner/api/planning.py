from fastapi import APIRouter, Depends, HTTPException
from dataclasses import asdict
from typing import Dict, Any
import logging

from .base import get_registry, get_session
from .. import schemas
from ..exceptions import PlannerError
from ..services.planning_session import PlanningSession, SessionRegistry

router = APIRouter()
logger = logging.getLogger(__name__)

# ============================================================================
# SESSION ENDPOINTS
# ============================================================================

@router.post("/planning/sessions", tags=["Planning Sessions"])
def create_session(request: schemas.SessionCreate, sessions: SessionRegistry = Depends(get_registry)):
    """Open a planning session; paper and client masters are loaded once here"""
    try:
        session = sessions.create(
            request.created_by_id,
            wastage=request.wastage,
            load_masters=request.load_masters,
        )
        return session.to_dict()
    except PlannerError:
        raise
    except Exception as e:
        logger.error(f"❌ SESSION CREATE: Unexpected error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/planning/sessions/{session_id}", tags=["Planning Sessions"])
def get_session_state(session: PlanningSession = Depends(get_session)):
    return session.to_dict()

@router.delete("/planning/sessions/{session_id}", response_model=schemas.SuccessResponse, tags=["Planning Sessions"])
def drop_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    sessions.drop(session_id)
    return {"message": "Planning session closed", "data": {"session_id": session_id}}

@router.get("/planning/sessions/{session_id}/tree", tags=["Planning Sessions"])
def get_tree(session: PlanningSession = Depends(get_session)):
    """Nested tree with used/remaining width per set"""
    return session.tree()

# ============================================================================
# WASTAGE ALLOWANCE ENDPOINTS
# ============================================================================

@router.put("/planning/sessions/{session_id}/allowance", tags=["Wastage Allowance"])
def propose_allowance(request: schemas.AllowanceProposal, session: PlanningSession = Depends(get_session)):
    """Stage a wastage allowance in draft; nothing is validated against the tree yet"""
    return session.propose_allowance(request.wastage)

@router.post("/planning/sessions/{session_id}/allowance/commit", tags=["Wastage Allowance"])
def commit_allowance(session: PlanningSession = Depends(get_session)):
    """Apply the draft allowance; refused with every overflowing set listed"""
    result = session.commit_allowance()
    logger.info(f"✅ ALLOWANCE: session {session.id} committed at {result['planning_width']:g}\"")
    return result

@router.post("/planning/sessions/{session_id}/allowance/reopen", tags=["Wastage Allowance"])
def reopen_allowance(session: PlanningSession = Depends(get_session)):
    return session.reopen_allowance()

# ============================================================================
# TREE EDIT ENDPOINTS
# ============================================================================

@router.post("/planning/sessions/{session_id}/paper-specs", tags=["Planning Tree"])
def add_paper_spec(request: schemas.PaperSpecCreate, session: PlanningSession = Depends(get_session)):
    spec = session.add_paper_spec(
        paper_id=request.paper_id,
        gsm=request.gsm,
        bf=request.bf,
        shade=request.shade,
    )
    return asdict(spec)

@router.delete("/planning/sessions/{session_id}/paper-specs/{spec_id}", tags=["Planning Tree"])
def delete_paper_spec(spec_id: str, session: PlanningSession = Depends(get_session)):
    return {"removed": session.delete_paper_spec(spec_id)}

@router.post("/planning/sessions/{session_id}/paper-specs/{spec_id}/jumbo-rolls", tags=["Planning Tree"])
def add_jumbo_roll(spec_id: str, session: PlanningSession = Depends(get_session)):
    """Add the next jumbo roll for a paper spec, with its three sets"""
    jumbo = session.add_jumbo_roll(spec_id)
    return session.jumbo_view(jumbo.id)

@router.delete("/planning/sessions/{session_id}/jumbo-rolls/{jumbo_id}", tags=["Planning Tree"])
def delete_jumbo_roll(jumbo_id: str, session: PlanningSession = Depends(get_session)):
    return {"removed": session.delete_jumbo_roll(jumbo_id)}

@router.post("/planning/sessions/{session_id}/jumbo-rolls/{jumbo_id}/sets", tags=["Planning Tree"])
def add_set(jumbo_id: str, session: PlanningSession = Depends(get_session)):
    return asdict(session.add_set(jumbo_id))

@router.get("/planning/sessions/{session_id}/sets/{set_id}", tags=["Planning Tree"])
def get_set(set_id: str, session: PlanningSession = Depends(get_session)):
    return session.set_view(set_id)

@router.delete("/planning/sessions/{session_id}/sets/{set_id}", tags=["Planning Tree"])
def delete_set(set_id: str, session: PlanningSession = Depends(get_session)):
    return {"removed": session.delete_set(set_id)}

@router.post("/planning/sessions/{session_id}/sets/{set_id}/cut-rolls", tags=["Planning Tree"])
def add_or_edit_cut_roll(set_id: str, request: schemas.CutRollWrite, session: PlanningSession = Depends(get_session)):
    """Add a cut roll to a set, or replace one when editing_id is given"""
    cut = session.add_or_edit_cut_roll(
        set_id,
        request.width_inches,
        request.quantity,
        request.client_id,
        editing_id=request.editing_id,
        order_source=request.order_source,
    )
    return {
        "cut_roll": asdict(cut),
        "remaining_width": session.remaining_width(cut.roll_set_id),
    }

@router.delete("/planning/sessions/{session_id}/cut-rolls/{cut_id}", tags=["Planning Tree"])
def delete_cut_roll(cut_id: str, session: PlanningSession = Depends(get_session)):
    return {"removed": session.delete_cut_roll(cut_id)}

@router.post("/planning/sessions/{session_id}/import", tags=["Planning Tree"])
def import_optimizer_rolls(request: schemas.OptimizerImportRequest, session: PlanningSession = Depends(get_session)):
    """Seed the tree from optimizer output; rolls that do not fit come back as orphaned"""
    try:
        return session.import_optimizer_rolls(request.cut_rolls)
    except PlannerError:
        raise
    except Exception as e:
        logger.error(f"❌ IMPORT: Unexpected error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

# ============================================================================
# SUBMISSION ENDPOINTS
# ============================================================================

@router.get("/planning/sessions/{session_id}/payload", tags=["Plan Submission"])
def preview_payload(session: PlanningSession = Depends(get_session)) -> Dict[str, Any]:
    """The request the plan service would receive, without sending it"""
    return session.build_payload()

@router.post("/planning/sessions/{session_id}/submit", tags=["Plan Submission"])
def submit_plan(session: PlanningSession = Depends(get_session)):
    """Create the plan upstream. On failure the session tree is left as it was."""
    try:
        logger.info(f"📤 SUBMIT: session {session.id} by user {session.created_by_id}")
        return session.submit()
    except PlannerError as e:
        logger.error(f"❌ SUBMIT: {e.message}")
        raise
    except Exception as e:
        logger.error(f"❌ SUBMIT: Unexpected error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/planning/sessions/{session_id}/wastage", tags=["Plan Submission"])
def submission_wastage(session: PlanningSession = Depends(get_session)):
    """Reportable trim from the hierarchy the plan service echoed back"""
    return session.submission_wastage()
