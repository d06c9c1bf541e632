"""
Submission encoder / decoder tests.

Coverage:
  - encode_submission produces the multipart fields the endpoint expects
  - decode_submission rejects every malformed shape with MalformedRequest
  - notification_for_response maps each response to exactly one notification
"""

import io
import json

import pytest

from app.config import SizeLimits
from app.models.delivery import UploadedFile
from app.services.draft import FileBlob, SubmissionDraft
from app.services.submission import (
    MalformedRequest,
    decode_submission,
    encode_submission,
    notification_for_response,
)


def _upload(name: str = "a.txt", content: bytes = b"hi") -> UploadedFile:
    return UploadedFile(name=name, stream=io.BytesIO(content), size=len(content))


# ---------------------------------------------------------------------------
# encode_submission
# ---------------------------------------------------------------------------

class TestEncodeSubmission:

    def test_encodes_recipients_as_json_array(self):
        draft = SubmissionDraft()
        draft.add_recipient("a@x.io")
        draft.add_recipient("b@x.io")
        draft.message = "see attached"

        data, _ = encode_submission(draft)

        assert json.loads(data["emails"]) == ["a@x.io", "b@x.io"]
        assert data["message"] == "see attached"

    def test_one_files_part_per_item_in_order(self):
        draft = SubmissionDraft(limits=SizeLimits())
        draft.add_files([FileBlob("a.txt", b"hi"), FileBlob("b.txt", b"bye")])

        _, files = encode_submission(draft)

        assert [part[0] for part in files] == ["files", "files"]
        assert [(part[1][0], part[1][1]) for part in files] == [("a.txt", b"hi"), ("b.txt", b"bye")]

    def test_encoded_fields_decode_back(self):
        draft = SubmissionDraft()
        draft.add_recipient("a@x.io")
        draft.message = "hello"
        draft.add_files([FileBlob("a.txt", b"hi")])

        data, files = encode_submission(draft)
        uploads = [_upload(name, content) for _, (name, content, _) in files]
        request = decode_submission(data["emails"], data["message"], uploads)

        assert request.recipients == ("a@x.io",)
        assert request.message == "hello"
        assert request.files[0].stream.read() == b"hi"


# ---------------------------------------------------------------------------
# decode_submission
# ---------------------------------------------------------------------------

class TestDecodeSubmission:

    def test_valid_request(self):
        request = decode_submission('["a@x.io", "b@x.io"]', None, [_upload()])

        assert request.recipients == ("a@x.io", "b@x.io")
        assert request.message == ""
        assert len(request.files) == 1

    @pytest.mark.parametrize("emails_field", [None, "", "   "])
    def test_missing_recipients(self, emails_field):
        with pytest.raises(MalformedRequest):
            decode_submission(emails_field, "", [_upload()])

    def test_recipients_not_json(self):
        with pytest.raises(MalformedRequest) as exc_info:
            decode_submission("a@x.io", "", [_upload()])

        assert "JSON array" in exc_info.value.message

    @pytest.mark.parametrize("emails_field", ['"a@x.io"', '{"to": "a@x.io"}', '["a@x.io", 3]', "null"])
    def test_recipients_not_string_array(self, emails_field):
        with pytest.raises(MalformedRequest):
            decode_submission(emails_field, "", [_upload()])

    def test_empty_recipient_list(self):
        with pytest.raises(MalformedRequest):
            decode_submission("[]", "", [_upload()])

    def test_six_recipients_rejected(self):
        emails = json.dumps([f"user{i}@x.io" for i in range(6)])

        with pytest.raises(MalformedRequest) as exc_info:
            decode_submission(emails, "", [_upload()])

        assert exc_info.value.message == "Maximum 5 recipients allowed."

    def test_custom_recipient_cap(self):
        with pytest.raises(MalformedRequest):
            decode_submission('["a@x.io", "b@x.io"]', "", [_upload()], max_recipients=1)

    def test_invalid_address_rejected(self):
        with pytest.raises(MalformedRequest) as exc_info:
            decode_submission('["a@x.io", "not-an-email"]', "", [_upload()])

        assert "not-an-email" in exc_info.value.message

    def test_duplicate_recipients_rejected(self):
        with pytest.raises(MalformedRequest):
            decode_submission('["a@x.io", "a@x.io"]', "", [_upload()])

    def test_case_variants_are_distinct(self):
        request = decode_submission('["a@x.io", "A@x.io"]', "", [_upload()])

        assert len(request.recipients) == 2

    @pytest.mark.parametrize("files", [None, []])
    def test_no_files_rejected(self, files):
        with pytest.raises(MalformedRequest):
            decode_submission('["a@x.io"]', "", files)

    def test_malformed_request_is_value_error(self):
        assert issubclass(MalformedRequest, ValueError)


# ---------------------------------------------------------------------------
# notification_for_response
# ---------------------------------------------------------------------------

class TestNotificationForResponse:

    def test_success(self):
        note = notification_for_response(200, {"success": True, "message": "sent"})

        assert note.level == "success"
        assert note.description == "sent"

    def test_partial(self):
        note = notification_for_response(200, {"partialSuccess": True, "message": "2 of 3"})

        assert note.level == "warning"
        assert note.description == "2 of 3"

    def test_error_with_details(self):
        note = notification_for_response(500, {"error": "Server error occurred", "details": "boom"})

        assert note.level == "error"
        assert note.description == "Server error occurred: boom"

    def test_non_json_body(self):
        note = notification_for_response(502, None)

        assert note.level == "error"
        assert "502" in note.description
