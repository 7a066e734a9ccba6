from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from schoolcrm.models.lead import PageMeta

AcademicStatus = Literal["ativo", "em_curso", "inadimplente", "evasao", "concluido", "trancado"]
EnrollmentType = Literal[
    "modelo_agenciado_maxfama",
    "modelo_agenciado_popschool",
    "indicacao_influencia",
    "indicacao_aluno",
]


class EnrollmentRecord(BaseModel):
    id: str
    lead_id: Optional[str] = None
    course_id: str
    class_id: Optional[str] = None
    status: str
    student_age: Optional[int] = None
    enrollment_type: Optional[str] = None
    referral_agent_code: Optional[str] = None
    influencer_name: Optional[str] = None
    notes: Optional[str] = None
    enrolled_at: datetime
    created_at: Optional[datetime] = None
    student_name: Optional[str] = None
    course_name: Optional[str] = None


class AcademicContactCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    course_id: UUID
    class_id: Optional[UUID] = None
    student_age: Optional[int] = Field(None, ge=0)
    enrollment_type: Optional[EnrollmentType] = None
    referral_agent_code: Optional[str] = None
    influencer_name: Optional[str] = None
    notes: Optional[str] = None


class EnrollmentUpdate(BaseModel):
    status: Optional[AcademicStatus] = None
    class_id: Optional[UUID] = None
    student_age: Optional[int] = Field(None, ge=0)
    enrollment_type: Optional[EnrollmentType] = None
    notes: Optional[str] = None


class PaginatedEnrollments(BaseModel):
    data: List[EnrollmentRecord]
    meta: PageMeta
