"""
Delivery fan-out engine.

For every recipient, concurrently:
  1. try the primary transport;
  2. if that fails for any reason, try the fallback transport once;
  3. record a DeliveryOutcome (succeeded=False only if both failed).

All recipients are launched together and awaited together. A failure for
one recipient never cancels or delays another, and ``deliver`` itself never
raises because of a transport failure.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from app.models.delivery import DeliveryOutcome, Transport
from app.services.transports import EmailTransport, OutgoingEmail

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptResult:
    """Result of one transport attempt for one recipient."""

    transport: Transport
    succeeded: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


async def attempt(
    transport: EmailTransport,
    kind: Transport,
    email: OutgoingEmail,
    timeout: Optional[float] = None,
) -> AttemptResult:
    """Run one transport and turn any failure (including a timeout) into a failed AttemptResult."""
    try:
        if timeout is not None:
            message_id = await asyncio.wait_for(transport.send(email), timeout=timeout)
        else:
            message_id = await transport.send(email)
    except asyncio.TimeoutError:
        limit = f" after {timeout:g}s" if timeout is not None else ""
        return AttemptResult(kind, False, error=f"{transport.name}: timed out{limit}")
    except Exception as e:
        return AttemptResult(kind, False, error=str(e) or e.__class__.__name__)
    return AttemptResult(kind, True, message_id=message_id or None)


async def deliver_one(
    email: OutgoingEmail,
    primary: EmailTransport,
    fallback: EmailTransport,
    timeout: Optional[float] = None,
) -> DeliveryOutcome:
    """attempt(primary), or else attempt(fallback)."""
    first = await attempt(primary, Transport.PRIMARY, email, timeout)
    if first.succeeded:
        logger.info(f"Email sent via {primary.name} to {email.recipient}")
        return DeliveryOutcome(
            recipient=email.recipient,
            succeeded=True,
            transport=Transport.PRIMARY,
            message_id=first.message_id,
        )

    logger.warning(
        f"{primary.name} failed for {email.recipient} ({first.error}); "
        f"using {fallback.name} fallback"
    )
    second = await attempt(fallback, Transport.FALLBACK, email, timeout)
    if second.succeeded:
        logger.info(f"Email sent via {fallback.name} fallback to {email.recipient}")
        return DeliveryOutcome(
            recipient=email.recipient,
            succeeded=True,
            transport=Transport.FALLBACK,
            message_id=second.message_id,
        )

    logger.error(f"Failed to send email to {email.recipient}: {second.error}")
    return DeliveryOutcome(
        recipient=email.recipient,
        succeeded=False,
        transport=Transport.FALLBACK,
        error=f"{first.error}; {second.error}",
    )


async def deliver(
    recipients: Sequence[str],
    archive: bytes,
    archive_name: str,
    subject: str,
    html: str,
    primary: EmailTransport,
    fallback: EmailTransport,
    timeout: Optional[float] = None,
) -> list[DeliveryOutcome]:
    """
    Send the same archive to every recipient and return one outcome each.

    Outcomes come back in recipient order, but callers should not rely on
    the order in which deliveries actually completed.

    Args:
        recipients:   Destination addresses (already validated).
        archive:      ZIP bytes, shared read-only by every attempt.
        archive_name: Attachment filename.
        subject:      Email subject line.
        html:         Rendered HTML body.
        primary:      Transport tried first for each recipient.
        fallback:     Transport tried once when the primary fails.
        timeout:      Per-attempt limit in seconds, or None for no limit.
    """
    emails = [
        OutgoingEmail(
            recipient=recipient,
            subject=subject,
            html=html,
            attachment_name=archive_name,
            attachment=archive,
        )
        for recipient in recipients
    ]
    return list(await asyncio.gather(
        *(deliver_one(email, primary, fallback, timeout) for email in emails)
    ))
