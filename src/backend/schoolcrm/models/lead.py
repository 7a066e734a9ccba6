from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

LeadStatus = Literal[
    "lead",
    "em_atendimento",
    "agendado",
    "confirmado",
    "compareceu",
    "proposta",
    "matriculado",
    "perdido",
]


class LeadRecord(BaseModel):
    id: str
    full_name: str
    phone: str
    email: Optional[str] = None
    guardian_name: Optional[str] = None
    source_id: Optional[str] = None
    campaign: Optional[str] = None
    ad_set: Optional[str] = None
    ad_name: Optional[str] = None
    external_id: Optional[str] = None
    external_source: Optional[str] = None
    notes: Optional[str] = None
    status: str
    scheduled_at: Optional[datetime] = None
    attended_at: Optional[datetime] = None
    proposal_at: Optional[datetime] = None
    enrolled_at: Optional[datetime] = None
    lost_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class LeadCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    guardian_name: Optional[str] = None
    source_id: Optional[UUID] = None
    campaign: Optional[str] = None
    notes: Optional[str] = None


class LeadUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    guardian_name: Optional[str] = None
    source_id: Optional[UUID] = None
    campaign: Optional[str] = None
    ad_set: Optional[str] = None
    ad_name: Optional[str] = None
    notes: Optional[str] = None


class LeadStatusChange(BaseModel):
    status: LeadStatus
    changed_by: Optional[str] = None
    notes: Optional[str] = None


class LeadHistoryRecord(BaseModel):
    id: str
    lead_id: str
    from_status: Optional[str]
    to_status: str
    changed_by: Optional[str]
    notes: Optional[str]
    created_at: datetime


class LeadCustomValueRecord(BaseModel):
    id: str
    lead_id: str
    field_id: str
    field_name: str
    field_label: str
    field_type: str
    value_text: Optional[str] = None
    value_number: Optional[float] = None
    value_date: Optional[date] = None
    value_boolean: Optional[bool] = None


class WhatsAppLink(BaseModel):
    lead_id: str
    phone: str
    url: str


class PageMeta(BaseModel):
    total: int
    page: int
    size: int


class PaginatedLeads(BaseModel):
    data: List[LeadRecord]
    meta: PageMeta
