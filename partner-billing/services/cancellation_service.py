"""
Cancellation-request service.

Cancellation-requested assignments cannot be invoiced until the request is
rejected. This service rejects requests for one or more leads of a partner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from repositories.client import StoreRequestError
from repositories.lead_repository import reject_cancellation_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CancellationRejectionResult:
    """
    rejected: lead ids whose cancellation request was rejected
    failed: lead id -> error message for requests the store refused
    """
    rejected: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


def reject_cancellation_requests(
    partner_id: str,
    lead_ids: Sequence[str],
    reason: Optional[str] = None,
) -> CancellationRejectionResult:
    """
    Reject the cancellation requests of several leads.

    Each lead is a separate store call. A failure is recorded and the remaining
    leads are still processed; nothing is retried.
    """

    rejected: List[str] = []
    failed: Dict[str, str] = {}

    for lead_id in dict.fromkeys(lead_ids):
        try:
            reject_cancellation_request(lead_id, partner_id, reason)
        except StoreRequestError as exc:
            logger.error("Rejecting cancellation of lead %s for partner %s failed: %s", lead_id, partner_id, exc)
            failed[lead_id] = exc.message
            continue
        rejected.append(lead_id)

    logger.info(
        "Rejected %d cancellation request(s) for partner %s (%d failed)",
        len(rejected),
        partner_id,
        len(failed),
    )
    return CancellationRejectionResult(rejected=rejected, failed=failed)


__all__ = [
    "CancellationRejectionResult",
    "reject_cancellation_requests",
]
