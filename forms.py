"""
Form schema lifecycle: display ordering, public exposure and the
versioning policy applied when a form's field list is replaced.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from schemas import Form, FormUpdate, utcnow

logger = logging.getLogger(__name__)


class FormNotFound(LookupError):
    """Raised for missing and inactive forms alike."""


def sort_fields(fields: Sequence[Any]) -> List[Any]:
    # sorted() is stable, so equal `order` values keep their stored sequence
    return sorted(fields, key=lambda f: f.order)


def _snapshot(fields: Sequence[Any]) -> List[Dict[str, Any]]:
    return [f.model_dump(mode="json") for f in fields]


def fields_changed(previous: Sequence[Any], new: Sequence[Any]) -> bool:
    """Structural diff of two field lists.

    Order-sensitive and value-sensitive: a change to any `order` value, a
    reordering of the stored list, or an edit anywhere in option or nested
    field content counts as a change.
    """
    return _snapshot(previous) != _snapshot(new)


def apply_field_mutation(form: Form, new_fields: Sequence[Any], now: Optional[datetime] = None) -> Form:
    """Replace the field list, bumping the version once if it changed structurally."""
    changed = fields_changed(form.fields, new_fields)
    version = form.version + 1 if changed else form.version
    if changed:
        logger.info("Form %s fields changed, version %d -> %d", form.id, form.version, version)
    return form.model_copy(update={
        "fields": list(new_fields),
        "version": version,
        "updatedAt": now or utcnow(),
    })


def apply_form_update(form: Form, update: FormUpdate, now: Optional[datetime] = None) -> Form:
    now = now or utcnow()
    changes: Dict[str, Any] = {"updatedAt": now}
    if update.title is not None:
        changes["title"] = update.title
    if update.description is not None:
        changes["description"] = update.description
    if update.isActive is not None:
        changes["isActive"] = update.isActive
    updated = form.model_copy(update=changes)
    if update.fields is not None:
        updated = apply_field_mutation(updated, update.fields, now)
    return updated


def public_form(form: Optional[Form]) -> Form:
    """Form as shown to unprivileged callers, fields in display order."""
    if form is None or not form.isActive:
        raise FormNotFound("Form not found")
    return form.model_copy(update={"fields": sort_fields(form.fields)})
