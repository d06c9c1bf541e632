"""
Send-email router.

Endpoints:
  POST /send-email   : zip the uploaded files and email them to every recipient

Request (multipart form):
  emails    JSON array of recipient addresses (1..MAX_RECIPIENTS)
  message   optional text quoted in the email body
  files     one or more file parts

Responses:
  200 {"success": true, "message", "results"}         every recipient succeeded
  200 {"partialSuccess": true, "message", "results"}  some recipients failed
  400 {"error"}                                       bad recipients, files or sizes
  405 {"error"}                                       any method other than POST
  500 {"error", "details"?}                           archive failure, all failed, or unexpected
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.config import Settings, load_settings
from app.models.delivery import OverallState, UploadedFile
from app.services.archive import ArchiveBuildFailed, ArchiveSource, archive_name, build_archive
from app.services.delivery import deliver
from app.services.email_template import EMAIL_SUBJECT, render_email_html
from app.services.submission import MalformedRequest, decode_submission
from app.services.summary import summarize
from app.services.transports import BrevoTransport, EmailTransport, SmtpTransport

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_settings() -> Settings:
    return load_settings()


def get_transports(
    settings: Settings = Depends(get_settings),
) -> tuple[EmailTransport, EmailTransport]:
    """(primary, fallback) transports; a None timeout leaves attempts unlimited."""
    timeout = settings.delivery_timeout_seconds
    return (
        BrevoTransport(settings.brevo, timeout=timeout),
        SmtpTransport(settings.smtp, timeout=timeout),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(timezone.utc).date()


def _error(status_code: int, message: str, details: Optional[str] = None) -> JSONResponse:
    """Build the ``{"error": ..., "details"?: ...}`` response body."""
    content = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _upload_size(upload: UploadFile) -> int:
    """Size of an upload, measuring the spooled file when the size is unknown."""
    if upload.size is not None:
        return upload.size
    fh = upload.file
    position = fh.tell()
    fh.seek(0, 2)
    size = fh.tell()
    fh.seek(position)
    return size


def _check_sizes(uploads: list[UploadedFile], settings: Settings) -> Optional[str]:
    """Return an error message if any file or the total exceeds the limits."""
    limits = settings.limits
    total = 0
    for upload in uploads:
        if upload.size > limits.per_file_limit_bytes:
            return f'File "{upload.name}" exceeds the per-file size limit.'
        total += upload.size
    if total > limits.total_budget_bytes:
        return "Total file size exceeds the upload limit."
    return None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/send-email")
async def send_email(
    emails: Optional[str] = Form(None),
    message: Optional[str] = Form(None),
    files: Optional[list[Union[UploadFile, str]]] = File(None),
    settings: Settings = Depends(get_settings),
    transports: tuple[EmailTransport, EmailTransport] = Depends(get_transports),
) -> JSONResponse:
    """
    Zip the uploaded files once, then deliver the archive to every recipient
    concurrently (primary transport first, SMTP fallback on failure).
    """
    try:
        try:
            # A "files" part sent as a plain form field arrives as str.
            if any(isinstance(f, str) for f in (files or [])):
                raise MalformedRequest("Email(s) and files are required.")
            uploads = [
                UploadedFile(name=f.filename or "file", stream=f.file, size=_upload_size(f))
                for f in (files or [])
            ]
            request = decode_submission(
                emails, message, uploads, max_recipients=settings.limits.max_recipients
            )
        except MalformedRequest as e:
            return _error(400, e.message)

        size_error = _check_sizes(list(request.files), settings)
        if size_error:
            return _error(400, size_error)

        logger.info(
            f"Preparing to send {len(request.files)} file(s) to "
            f"{len(request.recipients)} recipient(s)"
        )

        try:
            archive = await run_in_threadpool(
                build_archive,
                [ArchiveSource(name=f.name, source=f.stream) for f in request.files],
            )
        except ArchiveBuildFailed as e:
            logger.error(f"Archive build failed: {e.message}")
            return _error(500, "Failed to build archive", e.message)

        processed_on = _today()
        zip_name = archive_name(settings.product_name, processed_on)
        html = render_email_html(
            len(request.files), request.message, processed_on, settings.product_name
        )

        primary, fallback = transports
        outcomes = await deliver(
            request.recipients,
            archive,
            zip_name,
            EMAIL_SUBJECT,
            html,
            primary,
            fallback,
            timeout=settings.delivery_timeout_seconds,
        )
        summary = summarize(outcomes)
        results = [o.to_result() for o in summary.outcomes]

        if summary.overall_state is OverallState.ALL_FAILED:
            return _error(500, "Failed to send all emails", summary.message)

        if summary.overall_state is OverallState.PARTIAL:
            return JSONResponse(content={
                "partialSuccess": True,
                "message": summary.message,
                "results": results,
            })

        return JSONResponse(content={
            "success": True,
            "message": summary.message,
            "results": results,
        })

    except Exception as e:
        logger.exception("Server error while sending email")
        return _error(500, "Server error occurred", str(e) or e.__class__.__name__)


@router.api_route(
    "/send-email",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def send_email_method_not_allowed() -> JSONResponse:
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})
