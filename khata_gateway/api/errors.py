"""Mapping of domain failures to HTTP responses"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Type

from fastapi import HTTPException
from sqlalchemy.orm import Session

from khata_gateway.domain.exceptions import (
    CollateralNotConfirmed,
    ConcurrentModificationError,
    DocumentStoreError,
    DomainException,
    DuplicateLoanNumber,
    EntryAlreadyDeleted,
    InvalidAmount,
    InvalidLoanTerms,
    InvalidStateTransition,
    MessagingError,
    NotFoundError,
    PartyDeleted,
)
from khata_gateway.infrastructure.observability.logging import log_domain_error
from khata_gateway.infrastructure.observability.metrics import domain_error_counter

ERROR_STATUS: Dict[Type[DomainException], int] = {
    InvalidAmount: 422,
    InvalidLoanTerms: 422,
    CollateralNotConfirmed: 422,
    PartyDeleted: 409,
    EntryAlreadyDeleted: 409,
    InvalidStateTransition: 409,
    DuplicateLoanNumber: 409,
    ConcurrentModificationError: 409,
    NotFoundError: 404,
    DocumentStoreError: 502,
    MessagingError: 502,
}


def to_http_exception(exc: DomainException) -> HTTPException:
    status = ERROR_STATUS.get(type(exc), 400)
    return HTTPException(status_code=status, detail={"code": exc.code, "message": str(exc)})


@contextmanager
def domain_errors(db: Session | None, request_id: str, step: str) -> Iterator[None]:
    """
    Roll back and translate failures raised inside a request handler.

    Known domain errors keep their own message; anything else becomes a
    generic 500. Nothing is retried.
    """
    try:
        yield
    except DomainException as e:
        if db is not None:
            db.rollback()
        domain_error_counter.labels(code=e.code).inc()
        log_domain_error(request_id, e.code, str(e), step)
        raise to_http_exception(e)
    except HTTPException:
        if db is not None:
            db.rollback()
        raise
    except Exception as e:
        if db is not None:
            db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "step": step})
        raise HTTPException(status_code=500, detail="Internal server error")
