"""
Reduce per-recipient outcomes to one overall result.

  all_ok      every recipient succeeded
  partial     at least one succeeded and at least one failed
  all_failed  nobody succeeded (the endpoint answers 500)
"""

from typing import Sequence

from app.models.delivery import DeliveryOutcome, DeliverySummary, OverallState


def summarize(outcomes: Sequence[DeliveryOutcome]) -> DeliverySummary:
    total = len(outcomes)
    succeeded = sum(1 for o in outcomes if o.succeeded)

    if total and succeeded == total:
        state = OverallState.ALL_OK
        message = f"Successfully sent to all {succeeded} out of {total} recipients"
    elif succeeded:
        state = OverallState.PARTIAL
        message = f"Successfully sent to {succeeded} out of {total} recipients"
    else:
        state = OverallState.ALL_FAILED
        message = f"Failed to send to all recipients (0 out of {total} succeeded)"

    return DeliverySummary(
        overall_state=state,
        succeeded_count=succeeded,
        total_count=total,
        outcomes=list(outcomes),
        message=message,
    )
