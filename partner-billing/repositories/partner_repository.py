"""
Partner repository (store access).

Read-only access to partner profiles: the paginated partner list used by the
billing overview and single-partner lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from domain.lead import ServiceType
from domain.partner import Partner, PartnerStatus, PartnerType
from domain.time import parse_optional_utc_datetime
from repositories.client import StoreRequestError, request_json, unwrap
from repositories.serialization import ref_id


@dataclass(frozen=True, slots=True)
class PartnerPage:
    """One page of the partner list."""
    partners: List[Partner]
    page: int
    total: int


def _row_to_partner(row: Mapping[str, Any]) -> Partner:
    """Convert a store partner document into a domain Partner."""

    partner_id = ref_id(row.get("_id")) or ref_id(row.get("id"))
    if partner_id is None:
        raise ValueError("Partner row has no _id")

    contact = row.get("contactPerson") or {}
    contact_name = " ".join(part for part in (contact.get("firstName"), contact.get("lastName")) if part) or None

    return Partner(
        partner_id=partner_id,
        company_name=str(row.get("companyName") or ""),
        status=PartnerStatus(str(row.get("status") or PartnerStatus.PENDING.value)),
        partner_type=PartnerType(str(row.get("partnerType") or PartnerType.BASIC.value)),
        contact_name=contact_name,
        contact_email=contact.get("email"),
        contact_phone=contact.get("phone"),
        approved_at=parse_optional_utc_datetime(row.get("approvedAt")),
    )


def list_partners(
    page: int = 1,
    limit: int = 20,
    service_type: Optional[ServiceType] = None,
    search: Optional[str] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> PartnerPage:
    """
    List partners, one page at a time.

    month/year let the store restrict the list to partners relevant to a
    billing period.
    """

    body = request_json(
        "GET",
        "/partners",
        params={
            "page": page,
            "limit": limit,
            "serviceType": service_type.value if service_type else None,
            "search": search or None,
            "month": month,
            "year": year,
        },
    )

    rows = body.get("partners", []) if isinstance(body, Mapping) else body
    partners = [_row_to_partner(row) for row in rows or []]

    pagination = body.get("pagination") if isinstance(body, Mapping) else None
    total = len(partners)
    if isinstance(pagination, Mapping) and pagination.get("total") is not None:
        total = int(pagination["total"])

    return PartnerPage(partners=partners, page=page, total=total)


def get_partner_by_id(partner_id: str) -> Optional[Partner]:
    """
    Fetch a partner by ID.

    Returns:
    - Partner if found
    - None if the store has no such partner
    """

    try:
        body = request_json("GET", f"/partners/{partner_id}")
    except StoreRequestError as exc:
        if exc.status_code == 404:
            return None
        raise
    return _row_to_partner(unwrap(body, "partner"))


__all__ = [
    "PartnerPage",
    "list_partners",
    "get_partner_by_id",
]
