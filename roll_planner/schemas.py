from typing import List, Optional, Dict, Any
from pydantic import AliasChoices, BaseModel, Field, field_validator
from enum import Enum


# ============================================================================
# STATUS ENUMS
# ============================================================================

class PaperStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"

# ============================================================================
# MASTER RECORDS - Validated copies of paper/client master data
# ============================================================================

class PaperRecord(BaseModel):
    id: str
    frontend_id: Optional[str] = Field(None, description="Human-readable paper ID (e.g., PAP-00001)")
    name: Optional[str] = None
    gsm: int = Field(..., gt=0)
    bf: float = Field(..., gt=0)
    shade: str = Field(..., min_length=1, max_length=50)
    status: str = Field(default=PaperStatus.ACTIVE.value)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v

    class Config:
        from_attributes = True
        extra = "ignore"

class ClientRecord(BaseModel):
    id: str
    frontend_id: Optional[str] = Field(None, description="Human-readable client ID (e.g., CL-00001)")
    company_name: str = Field(..., max_length=255)
    status: str = Field(default=ClientStatus.ACTIVE.value)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v

    class Config:
        from_attributes = True
        extra = "ignore"

# ============================================================================
# PRODUCTION DATA - Cut rolls echoed back by the plan service
# ============================================================================

class ProductionCutRoll(BaseModel):
    """Cut roll as found in a production hierarchy; most fields are optional upstream."""
    # Upstream payloads use width_inches and width interchangeably
    width: Optional[float] = Field(
        None, validation_alias=AliasChoices("width", "width_inches"), description="Cut width in inches"
    )
    gsm: Optional[int] = None
    bf: Optional[float] = None
    shade: Optional[str] = None
    paper_id: Optional[str] = None
    individual_roll_number: Optional[int] = Field(None, description="118\" roll this cut came from")
    trim_left: Optional[float] = Field(None, description="Leftover width on that 118\" roll")
    barcode_id: Optional[str] = None
    client_name: Optional[str] = None
    jumbo_roll_frontend_id: Optional[str] = None
    parent_118_roll_id: Optional[str] = None

    @field_validator("paper_id", "barcode_id", "jumbo_roll_frontend_id", "parent_118_roll_id", mode="before")
    @classmethod
    def coerce_str(cls, v):
        return str(v) if v is not None else v

    class Config:
        extra = "ignore"

# ============================================================================
# SESSION REQUESTS
# ============================================================================

class SessionCreate(BaseModel):
    created_by_id: str = Field(..., min_length=1, description="Authenticated user id")
    wastage: Optional[float] = Field(None, description="Initial wastage allowance in inches")
    load_masters: bool = Field(default=True, description="Load paper and client masters on creation")

class AllowanceProposal(BaseModel):
    wastage: float = Field(..., description="Wastage allowance in inches")

class PaperSpecCreate(BaseModel):
    """Either a paper master id, or an explicit gsm/bf/shade"""
    paper_id: Optional[str] = None
    gsm: Optional[int] = Field(None, gt=0)
    bf: Optional[float] = Field(None, gt=0)
    shade: Optional[str] = Field(None, max_length=50)

class CutRollWrite(BaseModel):
    width_inches: float = Field(..., gt=0)
    quantity: int = Field(default=1, ge=1)
    client_id: str = Field(..., min_length=1)
    order_source: Optional[str] = Field(None, max_length=50, description="e.g. ORD-00010-26")
    editing_id: Optional[str] = Field(None, description="Cut roll to replace")

class OptimizerImportRequest(BaseModel):
    cut_rolls: List[Dict[str, Any]] = Field(..., description="Flat optimizer output with individual_roll_number")

# ============================================================================
# LAYOUT / REPORT REQUESTS
# ============================================================================

class LayoutItemIn(BaseModel):
    width: float = Field(..., gt=0)
    code: Optional[str] = Field(None, description="Barcode or QR code; numeric part drives ordering")
    client_name: Optional[str] = None

class LayoutRequest(BaseModel):
    items: List[LayoutItemIn]
    max_allowed_width: float = Field(default=123.0, gt=0)
    client_name_length: int = Field(default=12, ge=3)

class JumboLabelRequest(BaseModel):
    raw_ids: List[Optional[str]]

class ProductionGroupingRequest(BaseModel):
    items: List[Dict[str, Any]]

class WastageExtractRequest(BaseModel):
    source_plan_id: str = Field(..., min_length=1)
    cut_rolls: List[ProductionCutRoll]

class WastageItemIn(BaseModel):
    width_inches: Optional[float] = None
    paper_id: Optional[str] = None
    source_plan_id: Optional[str] = None
    gsm: Optional[int] = None
    bf: Optional[float] = None
    shade: Optional[str] = None
    individual_roll_number: Optional[int] = None
    notes: Optional[str] = None

class WastageValidateRequest(BaseModel):
    items: List[WastageItemIn]

# ============================================================================
# RESPONSE SCHEMAS - Common response formats
# ============================================================================

class SuccessResponse(BaseModel):
    """Standard success response"""
    message: str
    data: Optional[Dict[str, Any]] = None
