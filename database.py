"""
MongoDB access for forms and submissions.

`db` is None when DATABASE_URL / DATABASE_NAME are not configured; every
helper then raises DatabaseUnavailable instead of failing on attribute access.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient

from schemas import Form, Submission

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

FORM_COLLECTION = "form"
SUBMISSION_COLLECTION = "submission"

db = None
if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


class DatabaseUnavailable(RuntimeError):
    pass


def _collection(name: str):
    if db is None:
        raise DatabaseUnavailable("Database not configured")
    return db[name]


def _object_id(value: Any) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _from_doc(model, doc: Dict[str, Any]):
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return model.model_validate(doc)


# --- Forms ---

def load_form(form_id: str) -> Optional[Form]:
    oid = _object_id(form_id)
    if oid is None:
        return None
    doc = _collection(FORM_COLLECTION).find_one({"_id": oid})
    return _from_doc(Form, doc) if doc else None


def list_forms(active_only: bool = False) -> List[Form]:
    query = {"isActive": True} if active_only else {}
    docs = _collection(FORM_COLLECTION).find(query).sort("createdAt", DESCENDING)
    return [_from_doc(Form, doc) for doc in docs]


def save_form(form: Form) -> Form:
    """Insert a new form or overwrite the stored one (last write wins)."""
    data = form.model_dump(exclude={"id"})
    collection = _collection(FORM_COLLECTION)
    if form.id is None:
        result = collection.insert_one(data)
        return form.model_copy(update={"id": str(result.inserted_id)})
    collection.replace_one({"_id": ObjectId(form.id)}, data)
    return form


def delete_form_cascade(form_id: str) -> bool:
    oid = _object_id(form_id)
    if oid is None:
        return False
    removed = _collection(SUBMISSION_COLLECTION).delete_many({"formId": form_id})
    result = _collection(FORM_COLLECTION).delete_one({"_id": oid})
    logger.info("Deleted form %s with %d submissions", form_id, removed.deleted_count)
    return result.deleted_count > 0


# --- Submissions ---

def save_submission(submission: Submission) -> Submission:
    data = submission.model_dump(exclude={"id"})
    result = _collection(SUBMISSION_COLLECTION).insert_one(data)
    return submission.model_copy(update={"id": str(result.inserted_id)})


def list_submissions(form_id: Optional[str] = None, page: int = 1, page_size: int = 10) -> Tuple[List[Submission], int]:
    """One page of submissions, newest first, plus the total matching count."""
    query = {"formId": form_id} if form_id else {}
    collection = _collection(SUBMISSION_COLLECTION)
    cursor = (
        collection.find(query)
        .sort("submittedAt", DESCENDING)
        .skip((page - 1) * page_size)
        .limit(page_size)
    )
    items = [_from_doc(Submission, doc) for doc in cursor]
    return items, collection.count_documents(query)


def iter_submissions(form_id: str):
    for doc in _collection(SUBMISSION_COLLECTION).find({"formId": form_id}).sort("submittedAt", DESCENDING):
        yield _from_doc(Submission, doc)
