"""
Submission draft and file admission guard tests.

Pure in-memory tests: no I/O, no app imports beyond the draft module.

Coverage:
  - admit() rule order: too large, duplicate, budget exceeded, accepted
  - SubmissionDraft.add_files arrival-order prefix behaviour
  - batch notifications ("K of N files accepted" / "No files were added")
  - remove_file re-opening budget
  - recipient guard (syntax, duplicates, cap)
"""

import pytest

from app.config import SizeLimits
from app.services.draft import (
    FileBlob,
    FileItem,
    RecipientRejection,
    RejectionReason,
    SubmissionDraft,
    admit,
    is_valid_email,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _limits(per_file: int = 100, total: int = 100, max_recipients: int = 5) -> SizeLimits:
    return SizeLimits(
        per_file_limit_bytes=per_file,
        total_budget_bytes=total,
        max_recipients=max_recipients,
    )


def _blob(name: str, size: int) -> FileBlob:
    return FileBlob(name=name, payload=b"x" * size)


def _item(name: str, size: int, item_id: str = "id-1") -> FileItem:
    return FileItem(id=item_id, name=name, payload=b"x" * size, size=size)


# ---------------------------------------------------------------------------
# admit()
# ---------------------------------------------------------------------------

class TestAdmitRules:
    """admit() applies its rules in order and never mutates the current set."""

    def test_accepts_file_within_limits(self):
        result = admit(_blob("a.txt", 10), [], _limits())

        assert result.accepted
        assert result.reason is None
        assert result.item.name == "a.txt"
        assert result.item.size == 10
        assert result.item.id

    def test_rejects_file_over_per_file_limit(self):
        result = admit(_blob("big.bin", 101), [], _limits())

        assert not result.accepted
        assert result.reason is RejectionReason.FILE_TOO_LARGE

    def test_too_large_checked_before_duplicate(self):
        current = [_item("big.bin", 101)]

        result = admit(_blob("big.bin", 101), current, _limits())

        assert result.reason is RejectionReason.FILE_TOO_LARGE

    def test_rejects_duplicate_name_and_size(self):
        current = [_item("a.txt", 10)]

        result = admit(_blob("a.txt", 10), current, _limits())

        assert result.reason is RejectionReason.DUPLICATE_FILE

    def test_same_name_different_size_is_not_duplicate(self):
        current = [_item("a.txt", 10)]

        result = admit(_blob("a.txt", 11), current, _limits())

        assert result.accepted

    def test_rejects_when_budget_would_be_exceeded(self):
        current = [_item("a.txt", 60)]

        result = admit(_blob("b.txt", 41), current, _limits())

        assert result.reason is RejectionReason.BUDGET_EXCEEDED

    def test_file_exactly_filling_budget_is_accepted(self):
        current = [_item("a.txt", 60)]

        result = admit(_blob("b.txt", 40), current, _limits())

        assert result.accepted

    def test_does_not_mutate_current_set(self):
        current = [_item("a.txt", 10)]

        admit(_blob("b.txt", 10), current, _limits())

        assert len(current) == 1


# ---------------------------------------------------------------------------
# SubmissionDraft.add_files
# ---------------------------------------------------------------------------

class TestDraftAddFiles:
    """add_files admits in arrival order; accepted files count against later ones."""

    def test_all_files_accepted_when_under_budget(self):
        draft = SubmissionDraft(limits=_limits(total=100))

        batch = draft.add_files([_blob("a", 30), _blob("b", 30), _blob("c", 40)])

        assert batch.accepted_count == 3
        assert [f.name for f in draft.files] == ["a", "b", "c"]
        assert batch.notifications() == []

    def test_over_budget_accepts_arrival_order_prefix(self):
        draft = SubmissionDraft(limits=_limits(total=100))

        batch = draft.add_files([_blob("a", 40), _blob("b", 40), _blob("c", 40), _blob("d", 40)])

        assert [f.name for f in draft.files] == ["a", "b"]
        assert [r.reason for r in batch.results[2:]] == [
            RejectionReason.BUDGET_EXCEEDED,
            RejectionReason.BUDGET_EXCEEDED,
        ]

    def test_smaller_file_after_rejection_still_fits(self):
        draft = SubmissionDraft(limits=_limits(total=100))

        draft.add_files([_blob("a", 70), _blob("b", 40), _blob("c", 30)])

        assert [f.name for f in draft.files] == ["a", "c"]

    def test_duplicate_within_one_batch_rejected(self):
        draft = SubmissionDraft(limits=_limits())

        batch = draft.add_files([_blob("a", 10), _blob("a", 10)])

        assert batch.accepted_count == 1
        assert batch.results[1].reason is RejectionReason.DUPLICATE_FILE

    def test_ids_are_unique(self):
        draft = SubmissionDraft(limits=_limits(total=1000, per_file=1000))

        draft.add_files([_blob(f"f{i}", 1) for i in range(20)])

        assert len({f.id for f in draft.files}) == 20

    def test_total_never_exceeds_budget(self):
        draft = SubmissionDraft(limits=_limits(total=100))

        draft.add_files([_blob(f"f{i}", 7 * (i + 1)) for i in range(10)])

        assert draft.total_size <= 100
        assert draft.remaining_budget >= 0


class TestBatchNotifications:
    """One notification per rejection, then one batch summary."""

    def test_mixed_batch_summarises_k_of_n(self):
        draft = SubmissionDraft(limits=_limits(total=100))

        batch = draft.add_files([_blob("a", 60), _blob("b", 60), _blob("c", 20)])
        notes = batch.notifications()

        assert len(notes) == 2
        assert notes[0].level == "error"
        assert '"b"' in notes[0].title
        assert notes[-1].level == "info"
        assert notes[-1].description == "2 of 3 files accepted"

    def test_all_rejected_batch(self):
        draft = SubmissionDraft(limits=_limits(per_file=10))

        notes = draft.add_files([_blob("a", 20), _blob("b", 30)]).notifications()

        assert notes[-1].title == "No files were added"
        assert len(notes) == 3

    def test_duplicate_notification_is_warning(self):
        draft = SubmissionDraft(limits=_limits())
        draft.add_files([_blob("a", 10)])

        notes = draft.add_files([_blob("a", 10)]).notifications()

        assert notes[0].level == "warning"
        assert "already added" in notes[0].title


class TestDraftRemoveFile:
    """Removing a file by id re-opens its share of the budget immediately."""

    def test_remove_reopens_budget(self):
        draft = SubmissionDraft(limits=_limits(total=100))
        draft.add_files([_blob("a", 80)])

        rejected = draft.add_files([_blob("b", 50)])
        assert rejected.accepted_count == 0

        assert draft.remove_file(draft.files[0].id) is True
        accepted = draft.add_files([_blob("b", 50)])

        assert accepted.accepted_count == 1
        assert [f.name for f in draft.files] == ["b"]

    def test_remove_unknown_id_returns_false(self):
        draft = SubmissionDraft(limits=_limits())

        assert draft.remove_file("missing") is False


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------

class TestRecipientGuard:

    @pytest.mark.parametrize("address", ["a@b.co", "first.last+tag@example.org"])
    def test_valid_addresses(self, address):
        assert is_valid_email(address)

    @pytest.mark.parametrize("address", ["", "plain", "a@b", "a b@c.io", "@c.io"])
    def test_invalid_addresses(self, address):
        assert not is_valid_email(address)

    def test_add_recipient_rejects_invalid(self):
        draft = SubmissionDraft()

        assert draft.add_recipient("nope") is RecipientRejection.INVALID_EMAIL
        assert draft.recipients == []

    def test_add_recipient_rejects_exact_duplicate(self):
        draft = SubmissionDraft()
        draft.add_recipient("a@x.io")

        assert draft.add_recipient("a@x.io") is RecipientRejection.DUPLICATE_EMAIL

    def test_duplicates_are_case_sensitive(self):
        draft = SubmissionDraft()
        draft.add_recipient("a@x.io")

        assert draft.add_recipient("A@x.io") is None
        assert len(draft.recipients) == 2

    def test_add_recipient_caps_at_max(self):
        draft = SubmissionDraft(limits=_limits(max_recipients=2))
        draft.add_recipient("a@x.io")
        draft.add_recipient("b@x.io")

        assert draft.add_recipient("c@x.io") is RecipientRejection.TOO_MANY_RECIPIENTS
        assert draft.recipients == ["a@x.io", "b@x.io"]

    def test_can_send_requires_recipient_and_file(self):
        draft = SubmissionDraft(limits=_limits())
        assert not draft.can_send

        draft.add_recipient("a@x.io")
        assert not draft.can_send

        draft.add_files([_blob("a", 1)])
        assert draft.can_send

    def test_reset_clears_everything(self):
        draft = SubmissionDraft(limits=_limits())
        draft.add_recipient("a@x.io")
        draft.add_files([_blob("a", 1)])
        draft.message = "hello"

        draft.reset()

        assert draft.recipients == []
        assert draft.files == []
        assert draft.message == ""
