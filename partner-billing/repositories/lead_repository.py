"""
Lead repository (store access).

This module provides *only* read access to a partner's leads and the
cancellation-rejection call. No billing rules (eligibility, periods, buckets)
belong here.

The store sends `partnerAssignments` as an array, as a single object, or not at
all. It is normalized to a tuple here so the rest of the code never branches on
its shape.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

from domain.lead import AssignmentStatus, Lead, PartnerAssignment, ServiceType
from domain.time import parse_optional_utc_datetime
from repositories.client import request_json, unwrap
from repositories.serialization import optional_decimal, ref_id

logger = logging.getLogger(__name__)

# Older store records use snake_case status names.
_STATUS_ALIASES = {
    "cancel_requested": AssignmentStatus.CANCELLATION_REQUESTED,
    "cancellation_approved": AssignmentStatus.CANCELLED,
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _parse_status(value: Any) -> Optional[AssignmentStatus]:
    """Map a store status to AssignmentStatus; None for statuses the billing engine does not know."""

    text = str(value or AssignmentStatus.PENDING.value)
    if text in _STATUS_ALIASES:
        return _STATUS_ALIASES[text]
    try:
        return AssignmentStatus(text)
    except ValueError:
        return None


def _parse_service_type(value: Any) -> Optional[ServiceType]:
    try:
        return ServiceType(str(value))
    except ValueError:
        return None


def _normalize_assignments(value: Any) -> List[Mapping[str, Any]]:
    """Coerce `partnerAssignments` to a list of assignment rows."""

    if isinstance(value, list):
        return [row for row in value if isinstance(row, Mapping)]
    if isinstance(value, Mapping):
        return [value]
    return []


def _row_to_assignment(row: Mapping[str, Any]) -> Optional[PartnerAssignment]:
    partner_id = ref_id(row.get("partner"))
    if partner_id is None:
        return None

    status = _parse_status(row.get("status"))
    if status is None:
        # Unknown statuses are never billable; the rest of the lead is still usable.
        logger.warning(
            "Skipping assignment %s for partner %s with unknown status %r",
            ref_id(row.get("_id")),
            partner_id,
            row.get("status"),
        )
        return None

    return PartnerAssignment(
        assignment_id=ref_id(row.get("_id")),
        partner_id=partner_id,
        status=status,
        assigned_at=parse_optional_utc_datetime(row.get("assignedAt")),
        accepted_at=parse_optional_utc_datetime(row.get("acceptedAt")),
        lead_price=optional_decimal(row.get("leadPrice")),
    )


def _row_to_lead(row: Mapping[str, Any]) -> Optional[Lead]:
    """
    Convert a store lead document into a domain Lead.

    Returns None for leads whose service type is missing or unknown.
    """

    lead_id = ref_id(row.get("_id")) or ref_id(row.get("id"))
    if lead_id is None:
        raise ValueError("Lead row has no _id")

    service_type = _parse_service_type(row.get("serviceType"))
    if service_type is None:
        logger.warning("Skipping lead %s with unknown service type %r", lead_id, row.get("serviceType"))
        return None

    user = row.get("user") or {}
    name = " ".join(part for part in (user.get("firstName"), user.get("lastName")) if part) or None

    assignments: Tuple[PartnerAssignment, ...] = tuple(
        assignment
        for assignment in map(_row_to_assignment, _normalize_assignments(row.get("partnerAssignments")))
        if assignment is not None
    )

    return Lead(
        lead_id=lead_id,
        lead_number=str(row.get("leadId") or lead_id),
        service_type=service_type,
        created_at=parse_optional_utc_datetime(row.get("createdAt")) or _EPOCH,
        customer_name=name,
        customer_email=user.get("email"),
        customer_phone=user.get("phone"),
        service_data=row.get("formData") or {},
        partner_assignments=assignments,
    )


def list_partner_leads(partner_id: str) -> List[Lead]:
    """
    Fetch every lead ever assigned to a partner.

    No status or date filter is applied by the store; callers decide what is
    billable. Leads with an unknown service type and assignments with an
    unknown status are skipped.
    """

    body = request_json("GET", f"/partners/{partner_id}/leads")
    rows = body.get("leads", []) if isinstance(body, Mapping) else body
    leads = (_row_to_lead(row) for row in rows or [])
    return [lead for lead in leads if lead is not None]


def reject_cancellation_request(lead_id: str, partner_id: str, reason: Optional[str] = None) -> Optional[Lead]:
    """
    Reject a partner's cancellation request for a lead, restoring the assignment
    to accepted.

    Returns:
        The updated Lead, or None if the store returned a lead of an unknown service type
    """

    payload: dict[str, Any] = {"action": "reject"}
    if reason:
        payload["reason"] = reason

    body = request_json("PUT", f"/leads/{lead_id}/partners/{partner_id}/cancel", json=payload)
    return _row_to_lead(unwrap(body, "lead"))


__all__ = [
    "list_partner_leads",
    "reject_cancellation_request",
]
