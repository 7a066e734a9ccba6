from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

FieldType = Literal["text", "number", "date", "select", "boolean"]


class LeadSourceRecord(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    is_system: Optional[bool] = False
    is_active: Optional[bool] = True
    created_at: Optional[datetime] = None


class LeadSourceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True


class LeadSourceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None


class CustomFieldRecord(BaseModel):
    id: str
    entity_type: str
    field_name: str
    field_label: str
    field_type: str
    options: Optional[List[Any]] = None
    is_required: Optional[bool] = False
    order_index: Optional[int] = 0
    is_active: Optional[bool] = True
    created_at: Optional[datetime] = None


class CustomFieldCreate(BaseModel):
    entity_type: str = "lead"
    field_name: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_]+$")
    field_label: str = Field(..., min_length=1)
    field_type: FieldType
    options: Optional[List[str]] = None
    is_required: bool = False
    order_index: int = 0


class CustomFieldUpdate(BaseModel):
    field_label: Optional[str] = None
    field_type: Optional[FieldType] = None
    options: Optional[List[str]] = None
    is_required: Optional[bool] = None
    order_index: Optional[int] = None
    is_active: Optional[bool] = None


class CourseRecord(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    modality: Optional[str] = None
    duration_hours: Optional[int] = None
    price: Optional[Decimal] = None
    is_active: bool
    created_at: Optional[datetime] = None


class ClassRecord(BaseModel):
    id: str
    course_id: str
    name: str
    room: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    max_students: Optional[int] = None
    is_active: Optional[bool] = True
