"""
Submission validation against a form schema.

Validation is a single pass over the fields in display order. Nested fields
are reached only through the selected option of a radio/select field and are
looked up in the flat answer map under ``<parent>_<nested>`` keys. Nothing in
here raises for malformed answers; every problem ends up in the returned
``ValidationResult``.
"""

import json
import math
import re
from datetime import date, datetime
from typing import Any, List, Mapping, Optional

from forms import sort_fields
from schemas import CHOICE_TYPES, Form, ValidationResult, nested_key

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, default=str)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    for parse in (date.fromisoformat, datetime.fromisoformat):
        try:
            parse(text)
            return True
        except ValueError:
            continue
    return False


def _compile(pattern: str):
    # a pattern that does not compile disables the rule
    try:
        return re.compile(pattern)
    except re.error:
        return None


def _text_errors(field, value: Any) -> List[str]:
    errors = []
    text = _stringify(value)
    rules = field.validation
    if rules is None:
        return errors
    if rules.minLength is not None and len(text) < rules.minLength:
        errors.append(f"{field.label} must be at least {rules.minLength} characters")
    if rules.maxLength is not None and len(text) > rules.maxLength:
        errors.append(f"{field.label} must be at most {rules.maxLength} characters")
    if rules.regex:
        pattern = _compile(rules.regex)
        if pattern is not None and pattern.fullmatch(text) is None:
            errors.append(f"{field.label} format is invalid")
    return errors


def _number_errors(field, value: Any) -> List[str]:
    number = _to_number(value)
    if number is None:
        return [f"{field.label} must be a number"]
    errors = []
    rules = field.validation
    if rules is not None:
        if rules.min is not None and number < rules.min:
            errors.append(f"{field.label} must be at least {rules.min}")
        if rules.max is not None and number > rules.max:
            errors.append(f"{field.label} must be at most {rules.max}")
    return errors


def _choice_errors(field, value: Any) -> List[str]:
    if not field.options:
        return [f"{field.label} has no options defined"]
    if not any(option.value == value for option in field.options):
        return [f"{field.label} must be one of the provided options"]
    return []


def _checkbox_errors(field, value: Any) -> List[str]:
    if not field.options:
        if not isinstance(value, bool):
            return [f"{field.label} must be true or false"]
        return []
    if not isinstance(value, (list, tuple)):
        return [f"{field.label} must be a list"]
    allowed = [option.value for option in field.options]
    invalid = [item for item in value if item not in allowed]
    if invalid:
        return [f"{field.label} contains invalid options"]
    return []


def _type_errors(field, value: Any) -> List[str]:
    if field.type == "email":
        if not EMAIL_RE.fullmatch(_stringify(value)):
            return [f"{field.label} must be a valid email address"]
        return []
    if field.type == "number":
        return _number_errors(field, value)
    if field.type in ("text", "textarea"):
        return _text_errors(field, value)
    if field.type == "date":
        if not _is_date(value):
            return [f"{field.label} must be a valid date"]
        return []
    if field.type in CHOICE_TYPES:
        return _choice_errors(field, value)
    if field.type == "checkbox":
        return _checkbox_errors(field, value)
    return []


def validate_field(field, value: Any) -> List[str]:
    """Errors for a single value; an empty list means it passed."""
    if _is_empty(value):
        if field.required:
            return [f"{field.label} is required"]
        return []
    return _type_errors(field, value)


def _selected_option(field, value: Any):
    if field.type not in CHOICE_TYPES or _is_empty(value):
        return None
    for option in field.options:
        if option.value == value:
            return option
    return None


def validate_submission(form: Form, answers: Mapping[str, Any]) -> ValidationResult:
    errors = {}
    for field in sort_fields(form.fields):
        value = answers.get(field.name)
        field_errors = validate_field(field, value)
        if field_errors:
            errors[field.name] = field_errors

        option = _selected_option(field, value)
        if option is None:
            continue
        for nested in option.nestedFields:
            key = nested_key(field.name, nested.name)
            nested_errors = validate_field(nested, answers.get(key))
            if nested_errors:
                errors[key] = nested_errors

    return ValidationResult(isValid=not errors, errors=errors)
