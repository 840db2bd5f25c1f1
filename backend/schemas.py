# schemas.py
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import ClassVar, List, Optional, Literal, Tuple

QuestionType = Literal["text", "email", "number", "date", "checkbox", "url"]


class _PartialPayload(BaseModel):
    """Patch body: every field optional, at least one must be supplied.

    Fields listed in `not_null` may be omitted but never sent as null.
    """
    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def check_non_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        for name in self.not_null:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# ------------------------
# Users
# ------------------------
class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr


# ------------------------
# Forms
# ------------------------
class OptionCreate(BaseModel):
    option_text: str
    order_index: int

class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=2)
    question_type: QuestionType
    is_required: bool = True
    order_index: int
    options: Optional[List[OptionCreate]] = None

class FormCreate(BaseModel):
    title: str = Field(min_length=2, max_length=100)
    description: Optional[str] = None
    questions: List[QuestionCreate]

class FormPatch(_PartialPayload):
    not_null: ClassVar[Tuple[str, ...]] = ("title", "is_public", "closed")

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_public: Optional[bool] = None
    closed: Optional[bool] = None


# ------------------------
# Questions
# ------------------------
class OptionPatch(BaseModel):
    id: Optional[int] = None
    option_text: str = Field(min_length=1)
    order_index: int

class QuestionPatch(_PartialPayload):
    not_null: ClassVar[Tuple[str, ...]] = ("question_text", "is_required", "order_index", "options")

    question_text: Optional[str] = Field(default=None, min_length=1)
    is_required: Optional[bool] = None
    order_index: Optional[int] = None
    options: Optional[List[OptionPatch]] = None


# ------------------------
# Responses
# ------------------------
class AnswerIn(BaseModel):
    question_id: int
    answer_text: Optional[str] = None
    option_id: Optional[int] = None

    @field_validator("answer_text")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None or v.strip() else None

class ResponseSubmit(BaseModel):
    answers: List[AnswerIn] = Field(min_length=1)
