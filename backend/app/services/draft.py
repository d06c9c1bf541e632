"""
Client-side submission draft and file admission guard.

A SubmissionDraft holds what the sender has assembled so far: recipients,
an optional message and the admitted files. Files enter through ``admit``,
which checks them against the per-file limit, the duplicate rule and the
aggregate byte budget, in that order:

  1. candidate.size > per_file_limit            -> FILE_TOO_LARGE
  2. same (name, size) already in the draft     -> DUPLICATE_FILE
  3. current total + candidate.size > budget    -> BUDGET_EXCEEDED
  4. otherwise                                  -> accepted with a fresh id

``admit`` is pure; ``SubmissionDraft.add_files`` applies it in arrival order
and produces the notifications a UI would show for the batch.
"""

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from app.config import SizeLimits

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(address: str) -> bool:
    """RFC-basic check: something@something.tld with no whitespace."""
    return bool(_EMAIL_RE.match(address))


class RejectionReason(str, Enum):
    FILE_TOO_LARGE = "file_too_large"
    DUPLICATE_FILE = "duplicate_file"
    BUDGET_EXCEEDED = "budget_exceeded"


class RecipientRejection(str, Enum):
    INVALID_EMAIL = "invalid_email"
    DUPLICATE_EMAIL = "duplicate_email"
    TOO_MANY_RECIPIENTS = "too_many_recipients"


@dataclass(frozen=True)
class FileBlob:
    """A file the user picked or dropped, before admission."""

    name: str
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class FileItem:
    id: str
    name: str
    payload: bytes
    size: int


@dataclass(frozen=True)
class Notification:
    """What a UI would render as one toast: level is success, info, warning or error."""

    level: str
    title: str
    description: str = ""


@dataclass(frozen=True)
class AdmissionResult:
    """Either ``item`` (accepted) or ``reason`` (rejected) is set, never both."""

    name: str
    item: Optional[FileItem] = None
    reason: Optional[RejectionReason] = None

    @property
    def accepted(self) -> bool:
        return self.item is not None

    def notification(self, limits: SizeLimits) -> Optional[Notification]:
        """The per-file notification for a rejection, or None when accepted."""
        if self.reason is None:
            return None
        limit_mib = _format_mib(limits.per_file_limit_bytes)
        if self.reason is RejectionReason.FILE_TOO_LARGE:
            return Notification(
                "error",
                f'File "{self.name}" exceeds {limit_mib} limit',
                f"Individual file size cannot exceed {limit_mib}",
            )
        if self.reason is RejectionReason.DUPLICATE_FILE:
            return Notification(
                "warning",
                f'File "{self.name}" already added',
                "Duplicate files are not allowed",
            )
        return Notification(
            "error",
            f'Cannot add "{self.name}"',
            "Adding this file would exceed the total size limit",
        )


@dataclass
class BatchAdmission:
    """Decisions for one multi-file drop, in arrival order."""

    results: list[AdmissionResult]
    limits: SizeLimits

    @property
    def accepted_count(self) -> int:
        return sum(1 for r in self.results if r.accepted)

    @property
    def total_count(self) -> int:
        return len(self.results)

    def notifications(self) -> list[Notification]:
        """
        One notification per rejected file, then at most one batch summary.

        The summary is only added when the batch had rejections: a mixed
        batch gets "K of N files accepted", an all-rejected batch gets
        "No files were added".
        """
        notes = [n for n in (r.notification(self.limits) for r in self.results) if n]
        if not notes:
            return notes
        if self.accepted_count:
            notes.append(Notification(
                "info",
                "Some files were added",
                f"{self.accepted_count} of {self.total_count} files accepted",
            ))
        else:
            notes.append(Notification(
                "error",
                "No files were added",
                "All selected files were rejected due to size limits or duplicates",
            ))
        return notes


def _format_mib(num_bytes: int) -> str:
    return f"{num_bytes / (1024 * 1024):g}MB"


def admit(
    candidate: FileBlob,
    current_set: Iterable[FileItem],
    limits: SizeLimits,
) -> AdmissionResult:
    """Decide whether ``candidate`` may join ``current_set``. Does not mutate anything."""
    current = list(current_set)

    if candidate.size > limits.per_file_limit_bytes:
        return AdmissionResult(candidate.name, reason=RejectionReason.FILE_TOO_LARGE)

    if any(f.name == candidate.name and f.size == candidate.size for f in current):
        return AdmissionResult(candidate.name, reason=RejectionReason.DUPLICATE_FILE)

    if sum(f.size for f in current) + candidate.size > limits.total_budget_bytes:
        return AdmissionResult(candidate.name, reason=RejectionReason.BUDGET_EXCEEDED)

    item = FileItem(
        id=uuid.uuid4().hex,
        name=candidate.name,
        payload=candidate.payload,
        size=candidate.size,
    )
    return AdmissionResult(candidate.name, item=item)


@dataclass
class SubmissionDraft:
    """
    Everything the sender has assembled for one send action.

    Owned by the caller; nothing here is shared between drafts.
    """

    limits: SizeLimits = field(default_factory=SizeLimits)
    recipients: list[str] = field(default_factory=list)
    message: str = ""
    files: list[FileItem] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)

    @property
    def remaining_budget(self) -> int:
        return self.limits.total_budget_bytes - self.total_size

    @property
    def can_send(self) -> bool:
        return bool(self.recipients) and bool(self.files)

    def add_files(self, candidates: Iterable[FileBlob]) -> BatchAdmission:
        """Admit each candidate in order; accepted files count against later ones."""
        results = []
        for candidate in candidates:
            result = admit(candidate, self.files, self.limits)
            if result.item is not None:
                self.files.append(result.item)
            results.append(result)
        return BatchAdmission(results=results, limits=self.limits)

    def remove_file(self, file_id: str) -> bool:
        """Drop an admitted file by id. Returns False if no such file."""
        for index, item in enumerate(self.files):
            if item.id == file_id:
                del self.files[index]
                return True
        return False

    def add_recipient(self, address: str) -> Optional[RecipientRejection]:
        """Append a recipient, or return why it was refused."""
        address = address.strip()
        if not is_valid_email(address):
            return RecipientRejection.INVALID_EMAIL
        if address in self.recipients:
            return RecipientRejection.DUPLICATE_EMAIL
        if len(self.recipients) >= self.limits.max_recipients:
            return RecipientRejection.TOO_MANY_RECIPIENTS
        self.recipients.append(address)
        return None

    def remove_recipient(self, address: str) -> bool:
        if address in self.recipients:
            self.recipients.remove(address)
            return True
        return False

    def reset(self) -> None:
        """Clear the draft after a successful send."""
        self.recipients.clear()
        self.files.clear()
        self.message = ""
