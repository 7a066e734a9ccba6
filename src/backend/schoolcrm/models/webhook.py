from typing import Any, Dict, Optional

from pydantic import BaseModel


class LeadWebhookPayload(BaseModel):
    """Lead webhook input after alias resolution."""

    full_name: str = ""
    phone: str = ""
    email: Optional[str] = None
    guardian_name: Optional[str] = None
    source: Optional[str] = None
    campaign: Optional[str] = None
    ad_set: Optional[str] = None
    ad_name: Optional[str] = None
    external_id: Optional[str] = None
    notes: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None


class StudentWebhookPayload(BaseModel):
    """Student/enrollment webhook input after alias resolution."""

    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    course: Optional[str] = None
    class_name: Optional[str] = None
    enrollment_type_raw: Optional[str] = None
    enrollment_type: Optional[str] = None
    referral_code: Optional[str] = None
    influencer: Optional[str] = None
    notes: Optional[str] = None

