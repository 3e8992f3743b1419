"""
Form request models
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any


class FormCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    is_published: bool = False
    calendly_link: Optional[str] = None


class SubmissionCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=200)
    client_email: EmailStr
    submission_data: Dict[str, Any] = Field(default_factory=dict)
