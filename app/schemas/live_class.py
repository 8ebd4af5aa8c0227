# app/schemas/live_class.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Module Schemas ====================


class LiveClassModuleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    position: Optional[int] = Field(None, ge=0)
    is_free: bool = False


class LiveClassModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    live_class_id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    position: int
    is_free: bool


# ==================== Live Class Schemas ====================


class LiveClassBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    capacity: Optional[int] = Field(None, ge=1)
    recurring_class: Optional[bool] = None
    pricing_model: Literal["FLAT", "TWO_STAGE"] = "FLAT"
    price: Decimal = Field(Decimal("0"), ge=0)
    registration_fee: Decimal = Field(Decimal("0"), ge=0)
    course_fee: Decimal = Field(Decimal("0"), ge=0)
    course_fee_enabled: bool = False
    requires_approval: bool = False
    is_active: bool = True
    is_first_module_free: bool = False


class LiveClassCreate(LiveClassBase):
    pass


class LiveClassUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=1)
    recurring_class: Optional[bool] = None
    price: Optional[Decimal] = Field(None, ge=0)
    registration_fee: Optional[Decimal] = Field(None, ge=0)
    course_fee: Optional[Decimal] = Field(None, ge=0)
    requires_approval: Optional[bool] = None
    is_active: Optional[bool] = None
    is_first_module_free: Optional[bool] = None


class LiveClassResponse(LiveClassBase):
    """Public class payload. Meeting credentials are never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    thumbnail_url: Optional[str] = None
    has_modules: bool
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    modules: List[LiveClassModuleResponse] = []


class LiveClassListResponse(BaseModel):
    live_classes: List[LiveClassResponse]
    total: int
    page: int
    size: int
    total_pages: int


class ToggleCourseFeeRequest(BaseModel):
    enabled: bool


class ToggleCourseFeeResponse(BaseModel):
    live_class_id: int
    course_fee_enabled: bool
    registrations_updated: int
