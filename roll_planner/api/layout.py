from fastapi import APIRouter, HTTPException
import logging

from .. import schemas
from ..services import segmentation
from ..services.id_mapper import SequentialIdMapper

router = APIRouter()
logger = logging.getLogger(__name__)

# ============================================================================
# PRINT LAYOUT ENDPOINTS
# ============================================================================

@router.post("/layout/segments", tags=["Print Layout"])
def segment_cut_rolls(request: schemas.LayoutRequest):
    """Order cut rolls by barcode sequence and split them into print rows"""
    try:
        return segmentation.layout_items(
            [item.model_dump() for item in request.items],
            max_allowed_width=request.max_allowed_width,
            client_name_length=request.client_name_length,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

# ============================================================================
# REPORT LABEL ENDPOINTS
# ============================================================================

@router.post("/layout/jumbo-labels", tags=["Report Labels"])
def jumbo_labels(request: schemas.JumboLabelRequest):
    """Readable JR-xxxxx labels for a batch of raw jumbo identifiers"""
    mapper = SequentialIdMapper()
    return {"labels": mapper.map_jumbo_ids(request.raw_ids)}

@router.post("/layout/production-groups", tags=["Report Labels"])
def production_groups(request: schemas.ProductionGroupingRequest):
    """Group flat production items by jumbo and set, with display labels"""
    mapper = SequentialIdMapper()
    groups = mapper.group_by_jumbo(request.items)
    logger.info(f"📊 GROUPING: {len(request.items)} items into {len(groups)} jumbo groups")
    return {"groups": groups}
