"""
Database Schemas for the Form Builder

Each Pydantic model corresponds to a MongoDB collection (lowercased class name).
- Form -> "form"
- Submission -> "submission"

Field definitions form a tagged union on ``type``. Nested fields hang off a
radio/select option and are restricted to the basic input types, which keeps
nesting at exactly one level.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FIELD_NAME_PATTERN = r"^[a-z0-9-]+$"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def nested_key(parent_name: str, nested_name: str) -> str:
    """Answer key of a nested field, also used as its CSV column key."""
    return f"{parent_name}_{nested_name}"


# --- Validation bags ---

class TextValidation(BaseModel):
    minLength: Optional[int] = Field(None, ge=0)
    maxLength: Optional[int] = Field(None, ge=0)
    regex: Optional[str] = None


class NumberValidation(BaseModel):
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None


# --- Field definitions ---

class FieldBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    label: str = Field(..., min_length=1)
    name: str = Field(..., pattern=FIELD_NAME_PATTERN)
    required: bool = False
    order: int = 0


class TextField(FieldBase):
    type: Literal["text"] = "text"
    validation: Optional[TextValidation] = None


class TextareaField(FieldBase):
    type: Literal["textarea"] = "textarea"
    validation: Optional[TextValidation] = None


class NumberField(FieldBase):
    type: Literal["number"] = "number"
    validation: Optional[NumberValidation] = None


class EmailField(FieldBase):
    type: Literal["email"] = "email"


class DateField(FieldBase):
    type: Literal["date"] = "date"


NestedField = Annotated[
    Union[TextField, TextareaField, NumberField, EmailField, DateField],
    Field(discriminator="type"),
]


class FieldOption(BaseModel):
    label: str
    value: str


class ChoiceOption(FieldOption):
    nestedFields: List[NestedField] = Field(default_factory=list)

    @field_validator("nestedFields")
    @classmethod
    def nested_names_unique(cls, fields):
        _ensure_unique([f.name for f in fields], "nested field name")
        return fields


class CheckboxField(FieldBase):
    """Zero options is a single boolean toggle, one or more is a multi-select."""

    type: Literal["checkbox"] = "checkbox"
    options: List[FieldOption] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def options_have_no_nested_fields(cls, data):
        if isinstance(data, dict):
            for option in data.get("options") or []:
                if isinstance(option, dict) and option.get("nestedFields"):
                    raise ValueError("checkbox options cannot carry nested fields")
        return data


class RadioField(FieldBase):
    type: Literal["radio"] = "radio"
    options: List[ChoiceOption] = Field(default_factory=list)


class SelectField(FieldBase):
    type: Literal["select"] = "select"
    options: List[ChoiceOption] = Field(default_factory=list)


FormField = Annotated[
    Union[
        TextField,
        TextareaField,
        NumberField,
        EmailField,
        DateField,
        CheckboxField,
        RadioField,
        SelectField,
    ],
    Field(discriminator="type"),
]

CHOICE_TYPES = ("radio", "select")


def _ensure_unique(names: List[str], what: str) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise ValueError(f"duplicate {what}: {name}")
        seen.add(name)


def check_field_names(fields: List[Any]) -> List[Any]:
    """Reject duplicate names and duplicate synthesized nested answer keys."""
    _ensure_unique([f.name for f in fields], "field name")
    keys = []
    for field in fields:
        if field.type not in CHOICE_TYPES:
            continue
        for option in field.options:
            keys.extend(nested_key(field.name, n.name) for n in option.nestedFields)
    _ensure_unique(keys, "nested answer key")
    return fields


# --- Documents ---

class Form(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: str = ""
    fields: List[FormField] = Field(default_factory=list)
    version: int = Field(1, ge=1)
    isActive: bool = True
    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    @field_validator("fields")
    @classmethod
    def fields_unique(cls, fields):
        return check_field_names(fields)


class Submission(BaseModel):
    id: Optional[str] = None
    formId: str
    formVersion: int
    answers: Dict[str, Any]
    submittedAt: datetime = Field(default_factory=utcnow)
    ip: str = ""
    metadata: Dict[str, str] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    isValid: bool
    errors: Dict[str, List[str]] = Field(default_factory=dict)


# --- Request bodies ---

class FormCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    fields: List[FormField] = Field(default_factory=list)

    @field_validator("fields")
    @classmethod
    def fields_unique(cls, fields):
        return check_field_names(fields)


class FormUpdate(BaseModel):
    """Full field-list replacement; omitted keys are left untouched."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    fields: Optional[List[FormField]] = None
    isActive: Optional[bool] = None

    @field_validator("fields")
    @classmethod
    def fields_unique(cls, fields):
        if fields is not None:
            check_field_names(fields)
        return fields


class SubmissionCreate(BaseModel):
    formId: str
    answers: Dict[str, Any]
    metadata: Dict[str, str] = Field(default_factory=dict)
