"""
Mapping of service-layer failures to HTTP errors.

- StoreRequestError: 502, or 404 when the store itself answered 404
- PartnerNotFoundError: 404
"""

from fastapi import HTTPException

from repositories.client import StoreRequestError
from services.period_service import PartnerNotFoundError


def http_error_from_store(exc: StoreRequestError) -> HTTPException:
    if exc.status_code == 404:
        return HTTPException(status_code=404, detail=exc.message)
    return HTTPException(status_code=502, detail=f"Billing store request failed: {exc.message}")


def http_error_from_missing_partner(exc: PartnerNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))
