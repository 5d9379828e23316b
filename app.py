# app.py - FastAPI server
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import config
import db
import forms
import models
import rejection_analytics
import rejection_catalog
import schemas
import submissions
from exceptions import FormBackendError, SchemaNotFound, SubmissionNotFound
from notifications import NotificationDispatcher, build_notifier
from submission_pipeline import SubmissionPipeline

app = FastAPI(title="Loan Forms - dynamic form submission API")

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("form-backend")

MAX_PAGE_SIZE = 100

# Notifications run as background scheduler jobs, each with its own session
dispatcher = NotificationDispatcher(build_notifier(), session_factory=db.SessionLocal)


@app.on_event("startup")
def startup_event():
    """Create tables and start the notification scheduler."""
    models.Base.metadata.create_all(bind=db.engine)
    dispatcher.start()


@app.on_event("shutdown")
def shutdown_event():
    dispatcher.shutdown()
    dispatcher.notifier.close()


@app.exception_handler(FormBackendError)
def form_backend_error_handler(request: Request, exc: FormBackendError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "message_en": exc.message_en})


# Dependencies
def get_db():
    db_sess = db.SessionLocal()
    try:
        yield db_sess
    finally:
        db_sess.close()


def get_dispatcher():
    return dispatcher


def _check_paging(page: int, page_size: int):
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be 1 or greater")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise HTTPException(status_code=400, detail=f"page_size must be between 1 and {MAX_PAGE_SIZE}")


def _submit(form_id: Optional[int], payload: schemas.SubmissionIn, db_sess: Session, notifier_dispatch):
    pipeline = SubmissionPipeline(db_sess, dispatcher=notifier_dispatch)
    try:
        result = pipeline.submit(form_id, payload.submitted_by, payload.values)
    except FormBackendError:
        raise
    except Exception:
        logger.exception("Error processing submission for form %s", form_id)
        raise HTTPException(status_code=500, detail="Error processing submission")

    logger.info("/submit form=%s submission=%s status=%s", form_id, result.submission_id, result.status)
    return schemas.SubmissionResultOut(
        submission_id=result.submission_id,
        status=result.status,
        is_approved=result.approved,
        rejection_reason=result.rejection_reason,
        rejection_reason_en=result.rejection_reason_en,
        errors=result.errors,
        errors_en=result.errors_en,
        submission=result.detail,
    )


# Forms
@app.post("/forms", response_model=schemas.FormOut, status_code=201)
def create_form(payload: schemas.FormIn, db_sess: Session = Depends(get_db)):
    try:
        form = forms.create_form(
            db_sess, payload.name, payload.fields, description=payload.description,
            created_by=payload.created_by, activate_now=payload.activate,
        )
    except Exception:
        raise HTTPException(status_code=500, detail="Error creating form")
    return forms.to_form_out(form)


@app.get("/forms/active", response_model=schemas.FormOut)
def active_form(db_sess: Session = Depends(get_db)):
    form = forms.get_active_schema(db_sess)
    if form is None:
        raise SchemaNotFound()
    return forms.to_form_out(form)


@app.post("/forms/active/submit", response_model=schemas.SubmissionResultOut)
def submit_active(payload: schemas.SubmissionIn, db_sess: Session = Depends(get_db),
                  notifier_dispatch=Depends(get_dispatcher)):
    return _submit(None, payload, db_sess, notifier_dispatch)


@app.get("/forms/active/rejection-reasons", response_model=schemas.FormRejectionReasons)
def active_rejection_reasons(db_sess: Session = Depends(get_db)):
    return rejection_catalog.catalog_for_active_form(db_sess)


@app.post("/forms/{form_id}/submit", response_model=schemas.SubmissionResultOut)
def submit(form_id: int, payload: schemas.SubmissionIn, db_sess: Session = Depends(get_db),
           notifier_dispatch=Depends(get_dispatcher)):
    return _submit(form_id, payload, db_sess, notifier_dispatch)


@app.post("/forms/{form_id}/activate", response_model=schemas.FormOut)
def activate_form(form_id: int, db_sess: Session = Depends(get_db)):
    try:
        form = forms.activate(db_sess, form_id)
    except Exception:
        raise HTTPException(status_code=500, detail="Error activating form")
    if form is None:
        raise SchemaNotFound(form_id)
    return forms.to_form_out(form)


@app.get("/forms/{form_id}/rejection-reasons", response_model=schemas.FormRejectionReasons)
def form_rejection_reasons(form_id: int, db_sess: Session = Depends(get_db)):
    return rejection_catalog.catalog_for_form(db_sess, form_id)


# Submissions
@app.get("/submissions", response_model=schemas.SubmissionPage)
def list_submissions(form_id: Optional[int] = None, status: Optional[str] = None,
                     from_date: Optional[datetime] = None, to_date: Optional[datetime] = None,
                     page: int = 1, page_size: int = 10, db_sess: Session = Depends(get_db)):
    _check_paging(page, page_size)
    filters = submissions.SubmissionFilter(form_id=form_id, status=status, from_date=from_date, to_date=to_date)
    return submissions.query_submissions(db_sess, filters, page=page, page_size=page_size)


@app.get("/submissions/{submission_id}", response_model=schemas.SubmissionOut)
def get_submission(submission_id: int, db_sess: Session = Depends(get_db)):
    detail = submissions.get_submission_detail(db_sess, submission_id)
    if detail is None:
        raise SubmissionNotFound(submission_id)
    return detail


@app.patch("/submissions/{submission_id}/status", response_model=schemas.SubmissionOut)
def update_status(submission_id: int, payload: schemas.StatusUpdateIn, db_sess: Session = Depends(get_db),
                  notifier_dispatch=Depends(get_dispatcher)):
    try:
        submission = submissions.update_status(
            db_sess, submission_id, payload.status, payload.rejection_reason, payload.rejection_reason_en,
            dispatcher=notifier_dispatch,
        )
    except FormBackendError:
        raise
    except Exception:
        raise HTTPException(status_code=500, detail="Error updating submission status")
    if submission is None:
        raise SubmissionNotFound(submission_id)
    return submissions.to_detail(submission)


@app.delete("/submissions/{submission_id}")
def delete_submission(submission_id: int, db_sess: Session = Depends(get_db)):
    try:
        deleted = submissions.delete_submission(db_sess, submission_id)
    except Exception:
        raise HTTPException(status_code=500, detail="Error deleting submission")
    if not deleted:
        raise SubmissionNotFound(submission_id)
    return {"submission_id": submission_id, "status": "deleted"}


# Rejection analytics
@app.get("/analytics/rejections/service-duration", response_model=schemas.SubmissionPage)
def rejected_by_service_duration(page: int = 1, page_size: int = 10, from_date: Optional[datetime] = None,
                                 to_date: Optional[datetime] = None, db_sess: Session = Depends(get_db)):
    _check_paging(page, page_size)
    return rejection_analytics.rejected_by_marker(db_sess, page, page_size, from_date, to_date)


@app.get("/analytics/rejections/statistics", response_model=List[schemas.RejectionStatistic])
def rejection_statistics(from_date: Optional[datetime] = None, to_date: Optional[datetime] = None,
                         db_sess: Session = Depends(get_db)):
    return rejection_analytics.rejection_statistics(db_sess, from_date, to_date)


@app.get("/analytics/rejections/by-reason", response_model=schemas.SubmissionPage)
def rejected_by_reason(pattern: str, page: int = 1, page_size: int = 10, from_date: Optional[datetime] = None,
                       to_date: Optional[datetime] = None, db_sess: Session = Depends(get_db)):
    if not pattern.strip():
        raise HTTPException(status_code=400, detail="pattern is required")
    _check_paging(page, page_size)
    return rejection_analytics.submissions_by_rejection_reason(db_sess, pattern, page, page_size, from_date, to_date)


@app.get("/health")
def health():
    return {"ok": True}
