#!/usr/bin/env python3
"""
Dev helper: send files to recipients through a running XyloMail backend.

Plays the part of the browser: files go through the same admission guard
(per-file limit, duplicates, total budget), recipients through the same
address checks, then the draft is encoded as multipart and POST-ed to
/api/send-email. Prints one line per rejected file, the batch summary, and
a single notification for the server's answer.

Usage
-----
# Send two files to one recipient
python scripts/send_files.py --to alice@example.com report.pdf notes.txt

# Several recipients with a message
python scripts/send_files.py --to a@example.com --to b@example.com \\
    --message "Q1 numbers attached" report.xlsx

# Target a different backend URL
python scripts/send_files.py --url http://staging.example.com --to a@example.com f.txt

# Check what would be sent without sending it
python scripts/send_files.py --dry-run --to a@example.com big.zip

Requires the project to be installed (pip install -e .) so that the ``app``
package is importable.
"""

import argparse
import sys
import textwrap
from pathlib import Path

import httpx

from app.config import load_settings
from app.services.draft import FileBlob, Notification, SubmissionDraft
from app.services.submission import encode_submission, notification_for_response


def _print_notification(note: Notification) -> None:
    line = f"[{note.level.upper()}] {note.title}"
    if note.description:
        line += f" - {note.description}"
    print(line)


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="send_files.py",
        description=textwrap.dedent("""\
            Zip files and email them to up to MAX_RECIPIENTS addresses via
            the XyloMail backend. Size limits are read from the environment
            (PER_FILE_LIMIT_BYTES, TOTAL_BUDGET_BYTES, MAX_RECIPIENTS).
        """),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("files", nargs="+", metavar="FILE", help="Files to send")
    parser.add_argument(
        "--to",
        dest="recipients",
        action="append",
        required=True,
        metavar="EMAIL",
        help="Recipient address (repeat for several recipients)",
    )
    parser.add_argument("--message", default="", help="Optional message for the email body")
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the admission checks and print the draft without sending it.",
    )
    args = parser.parse_args()

    draft = SubmissionDraft(limits=load_settings().limits, message=args.message)

    for address in args.recipients:
        rejection = draft.add_recipient(address)
        if rejection is not None:
            _print_notification(Notification("error", f"Recipient {address!r} skipped", rejection.value))

    blobs = []
    for name in args.files:
        path = Path(name)
        if not path.is_file():
            _print_notification(Notification("error", f"File not found: {path}"))
            continue
        blobs.append(FileBlob(name=path.name, payload=path.read_bytes()))

    for note in draft.add_files(blobs).notifications():
        _print_notification(note)

    if not draft.can_send:
        print("ERROR: Nothing to send - need at least one recipient and one file.", file=sys.stderr)
        return 1

    endpoint = f"{args.url.rstrip('/')}/api/send-email"
    print(f"\nEndpoint  : {endpoint}")
    print(f"To        : {', '.join(draft.recipients)}")
    print(f"Files     : {', '.join(f.name for f in draft.files)} ({draft.total_size:,} bytes)")

    if args.dry_run:
        print("\n[DRY RUN] Not sent.")
        return 0

    data, files = encode_submission(draft)
    try:
        response = httpx.post(endpoint, data=data, files=files, timeout=120)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  uvicorn app.main:app --app-dir backend --reload",
            file=sys.stderr,
        )
        return 1

    try:
        body = response.json()
    except ValueError:
        body = None

    note = notification_for_response(response.status_code, body)
    print()
    _print_notification(note)

    if note.level == "error":
        return 1
    draft.reset()
    return 0


if __name__ == "__main__":
    sys.exit(main())
