"""
Pydantic schemas for surveys and survey responses.
"""
from typing import Any, Literal, Optional, Union
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

QuestionType = Literal["text", "multiple_choice", "checkbox", "rating"]


class SurveyQuestion(BaseModel):
    id: str
    type: QuestionType
    text: str = Field(..., min_length=1)
    options: Optional[list[str]] = None
    required: bool = False

    @model_validator(mode="after")
    def check_options(self):
        if self.type in ("multiple_choice", "checkbox") and not self.options:
            raise ValueError(f"Question {self.id} needs options")
        return self


class SurveyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    questions: list[SurveyQuestion] = []
    is_active: bool = True
    is_published: bool = False
    due_date: Optional[datetime] = None


class SurveyUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    questions: Optional[list[SurveyQuestion]] = None
    is_active: Optional[bool] = None
    is_published: Optional[bool] = None
    due_date: Optional[datetime] = None


class SurveyResponseSchema(BaseModel):
    """Survey as returned by the API."""
    id: str
    title: str
    description: Optional[str] = None
    questions: list[dict[str, Any]] = []
    is_active: bool
    is_published: bool
    due_date: Optional[datetime] = None
    created_by_admin_id: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class SubmissionCreate(BaseModel):
    """Answers may arrive as an object or as a JSON-encoded string."""
    survey_id: str
    organization_id: Optional[str] = None
    responses: Union[dict[str, Any], str]


class SubmissionUpdate(BaseModel):
    responses: Union[dict[str, Any], str]


class SubmissionResponse(BaseModel):
    id: str
    survey_id: str
    organization_id: str
    survey_title: Optional[str] = None
    organization_name: Optional[str] = None
    responses: dict[str, Any]
    submitted_date: datetime
    created: datetime
    updated: datetime
