"""Dependency injection for FastAPI endpoints"""

import logging
import uuid
from fastapi import Header, HTTPException, Request
from procurement_gateway.domain.exceptions import (
    DomainException,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from procurement_gateway.infrastructure.clients.notifications import NotificationClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1, description="Acting user, resolved by the auth layer")) -> str:
    """Acting user id; authentication happens upstream"""
    return x_user_id


def get_notification_client() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")


def to_http_error(error: DomainException, request_id: str) -> HTTPException:
    """Map a typed domain failure to its HTTP status"""
    if isinstance(error, NotFoundError):
        status_code = 404
    elif isinstance(error, InvalidTransitionError):
        status_code = 409
    elif isinstance(error, ValidationError):
        status_code = 422
    elif isinstance(error, PersistenceError):
        logging.error(f"Persistence failure: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503, detail="Database temporarily unavailable")
    else:
        logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=500, detail="Internal server error")

    logging.warning(f"{type(error).__name__}: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=status_code, detail=str(error))
