import os
import io
import csv
import json
import logging
from typing import List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pymongo.errors import PyMongoError

import database
from database import DatabaseUnavailable
from forms import FormNotFound, apply_form_update, public_form, sort_fields
from sanitize import sanitize_input
from schemas import (
    CHOICE_TYPES,
    Form,
    FormCreate,
    FormUpdate,
    Submission,
    SubmissionCreate,
    nested_key,
)
from validation import validate_submission

# Firebase Admin for token verification (Auth)
import firebase_admin
from firebase_admin import auth as fb_auth, credentials as fb_credentials

# --- Config ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Initialize Firebase Admin if credentials provided
if not firebase_admin._apps:
    fb_creds_json = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON")
    try:
        if fb_creds_json:
            cred = fb_credentials.Certificate(json.loads(fb_creds_json))
            firebase_admin.initialize_app(cred)
    except (ValueError, IOError) as e:
        # admin endpoints will answer 401 until credentials are fixed
        logger.error("Firebase initialization failed: %s", e)

app = FastAPI(title="Form Builder API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FormNotFound)
async def form_not_found_handler(request: Request, exc: FormNotFound):
    return JSONResponse(status_code=404, content={"detail": "Form not found"})


@app.exception_handler(DatabaseUnavailable)
@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: Exception):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Database unavailable"})


# --- Helpers ---

def verify_admin(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Verify Firebase ID token from Authorization: Bearer <token>. Returns uid."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    token = parts[1]
    try:
        decoded = fb_auth.verify_id_token(token)
        return decoded.get("uid")
    except Exception as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")


def get_form_or_404(form_id: str) -> Form:
    form = database.load_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit}


def csv_columns(form: Form) -> List[Tuple[str, str]]:
    """(header, answer key) pairs: every field in display order, each followed by its nested fields."""
    columns = []
    for field in sort_fields(form.fields):
        columns.append((field.label, field.name))
        if field.type not in CHOICE_TYPES:
            continue
        for option in field.options:
            for nested in option.nestedFields:
                columns.append((f"{field.label} - {nested.label}", nested_key(field.name, nested.name)))
    return columns


def csv_cell(value) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(map(str, value))
    return str(value)


# --- Routes ---
@app.get("/")
def read_root():
    return {"message": "Form Builder API running"}


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/forms")
def list_public_forms():
    forms = database.list_forms(active_only=True)
    return [
        {"id": f.id, "title": f.title, "description": f.description, "createdAt": f.createdAt}
        for f in forms
    ]


@app.get("/api/forms/{form_id}")
def get_public_form(form_id: str):
    return public_form(database.load_form(form_id))


@app.post("/api/submissions", status_code=201)
def submit_form(payload: SubmissionCreate, request: Request, user_agent: Optional[str] = Header(None)):
    form = public_form(database.load_form(payload.formId))

    answers = sanitize_input(payload.answers)
    result = validate_submission(form, answers)
    if not result.isValid:
        logger.info("Rejected submission for form %s: %s", form.id, sorted(result.errors))
        return JSONResponse(status_code=400, content={"error": "Validation failed", "errors": result.errors})

    metadata = sanitize_input(payload.metadata)
    if user_agent:
        metadata.setdefault("userAgent", user_agent)
    submission = database.save_submission(Submission(
        formId=form.id,
        formVersion=form.version,
        answers=answers,
        ip=client_ip(request),
        metadata=metadata,
    ))
    logger.info("Stored submission %s for form %s v%d", submission.id, form.id, form.version)
    return {"message": "Submission successful", "submissionId": submission.id}


# --- Admin routes ---
@app.get("/api/admin/forms")
def admin_list_forms(uid: str = Depends(verify_admin)):
    return database.list_forms()


@app.get("/api/admin/forms/{form_id}")
def admin_get_form(form_id: str, uid: str = Depends(verify_admin)):
    return get_form_or_404(form_id)


@app.post("/api/admin/forms", status_code=201)
def admin_create_form(payload: FormCreate, uid: str = Depends(verify_admin)):
    form = database.save_form(Form(
        title=payload.title,
        description=payload.description or "",
        fields=payload.fields,
    ))
    logger.info("Created form %s with %d fields", form.id, len(form.fields))
    return form


@app.put("/api/admin/forms/{form_id}")
def admin_update_form(form_id: str, payload: FormUpdate, uid: str = Depends(verify_admin)):
    form = get_form_or_404(form_id)
    return database.save_form(apply_form_update(form, payload))


@app.delete("/api/admin/forms/{form_id}")
def admin_delete_form(form_id: str, uid: str = Depends(verify_admin)):
    if not database.delete_form_cascade(form_id):
        raise HTTPException(status_code=404, detail="Form not found")
    return {"message": "Form deleted successfully"}


@app.get("/api/admin/forms/{form_id}/submissions")
def admin_form_submissions(
    form_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    uid: str = Depends(verify_admin),
):
    items, total = database.list_submissions(form_id, page, limit)
    return {"submissions": items, "pagination": pagination(page, limit, total)}


@app.get("/api/admin/submissions")
def admin_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    formId: Optional[str] = None,
    uid: str = Depends(verify_admin),
):
    items, total = database.list_submissions(formId, page, limit)
    return {"submissions": items, "pagination": pagination(page, limit, total)}


@app.get("/api/admin/forms/{form_id}/submissions/export")
def export_csv(form_id: str, uid: str = Depends(verify_admin)):
    form = get_form_or_404(form_id)
    columns = csv_columns(form)
    subs = list(database.iter_submissions(form_id))

    def iter_rows():
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL)
        writer.writerow(["Submitted At"] + [header for header, _ in columns])
        yield output.getvalue(); output.seek(0); output.truncate(0)
        for s in subs:
            row = [s.submittedAt.isoformat()]
            row.extend(csv_cell(s.answers.get(key)) for _, key in columns)
            writer.writerow(row)
            yield output.getvalue(); output.seek(0); output.truncate(0)
    return StreamingResponse(
        iter_rows(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="form-{form_id}-submissions.csv"'},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
