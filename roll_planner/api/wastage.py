from fastapi import APIRouter, HTTPException
import logging

from .. import schemas
from ..services.wastage_calculator import WastageCalculator

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/wastage/extract", tags=["Wastage Calculation"])
def extract_wastage(request: schemas.WastageExtractRequest):
    """Reportable trim per 118\" roll of a production plan, with a validation report"""
    try:
        calculator = WastageCalculator()
        result = calculator.extract(request.cut_rolls, request.source_plan_id)
        report = result.to_dict()
        report["validation"] = calculator.validate(result.wastage_items)
        return report
    except Exception as e:
        logger.error(f"Error extracting wastage: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.post("/wastage/validate", tags=["Wastage Calculation"])
def validate_wastage(request: schemas.WastageValidateRequest):
    """Every problem with a batch of wastage records, never just the first"""
    calculator = WastageCalculator()
    return calculator.validate(item.model_dump() for item in request.items)
