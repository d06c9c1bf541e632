"""
Submission encoding (client side) and decoding (server side).

Wire format is a multipart form:
  emails    JSON-encoded array of recipient strings
  message   free text, may be empty
  files     one part per file, filename = original name

Public API:
  encode_submission(draft) -> (data, files)
  decode_submission(emails_field, message, files, max_recipients) -> SubmissionRequest
  notification_for_response(status_code, body) -> Notification
"""

import json
from typing import Any, Optional, Sequence

from app.config import DEFAULT_MAX_RECIPIENTS
from app.models.delivery import SubmissionRequest, UploadedFile
from app.services.draft import Notification, SubmissionDraft, is_valid_email


class MalformedRequest(ValueError):
    """Raised when a send request cannot be decoded into a valid SubmissionRequest."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def encode_submission(draft: SubmissionDraft) -> tuple[dict, list]:
    """
    Build the ``data`` and ``files`` arguments for an httpx multipart POST.

    Files keep their admission order and original names.
    """
    data = {
        "emails": json.dumps(list(draft.recipients)),
        "message": draft.message,
    }
    files = [
        ("files", (item.name, item.payload, "application/octet-stream"))
        for item in draft.files
    ]
    return data, files


def _parse_recipients(emails_field: Optional[str], max_recipients: int) -> list[str]:
    if emails_field is None or not str(emails_field).strip():
        raise MalformedRequest("Email(s) and files are required.")

    try:
        recipients = json.loads(emails_field)
    except (TypeError, ValueError):
        raise MalformedRequest("Recipients must be a JSON array of email addresses.")

    if not isinstance(recipients, list) or not all(isinstance(r, str) for r in recipients):
        raise MalformedRequest("Recipients must be a JSON array of email addresses.")

    if not recipients:
        raise MalformedRequest("Email(s) and files are required.")

    if len(recipients) > max_recipients:
        raise MalformedRequest(f"Maximum {max_recipients} recipients allowed.")

    invalid = [r for r in recipients if not is_valid_email(r)]
    if invalid:
        raise MalformedRequest(f"Invalid email address: {invalid[0]}")

    # Case-sensitive on purpose: "A@x.io" and "a@x.io" are distinct entries.
    if len(set(recipients)) != len(recipients):
        raise MalformedRequest("Duplicate recipients are not allowed.")

    return recipients


def decode_submission(
    emails_field: Optional[str],
    message: Optional[str],
    files: Optional[Sequence[UploadedFile]],
    max_recipients: int = DEFAULT_MAX_RECIPIENTS,
) -> SubmissionRequest:
    """
    Validate raw form fields and return an immutable SubmissionRequest.

    Raises:
        MalformedRequest: recipients missing, not a JSON string array, empty,
            more than ``max_recipients``, invalid or duplicated; or no files.
    """
    recipients = _parse_recipients(emails_field, max_recipients)

    if not files:
        raise MalformedRequest("Email(s) and files are required.")

    return SubmissionRequest(
        recipients=tuple(recipients),
        message=message or "",
        files=tuple(files),
    )


def notification_for_response(status_code: int, body: Any) -> Notification:
    """
    Map the endpoint's response to the single notification shown to the sender.

    Never produces more than one notification per submission, however many
    recipients failed.
    """
    body = body if isinstance(body, dict) else {}

    if status_code == 200 and body.get("success"):
        return Notification("success", "Files sent successfully!", body.get("message", ""))

    if status_code == 200 and body.get("partialSuccess"):
        return Notification("warning", "Partially sent!", body.get("message", ""))

    description = body.get("error") or f"Request failed with status {status_code}"
    if body.get("details"):
        description = f"{description}: {body['details']}"
    return Notification("error", "Failed to send files", description)
