"""Unit tests for mapping domain failures to HTTP errors"""

import pytest
from procurement_gateway.api.dependencies import to_http_error
from procurement_gateway.domain.exceptions import (
    DomainException,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error, status_code",
    [
        (NotFoundError("missing"), 404),
        (InvalidTransitionError("APPROVED", "REJECTED"), 409),
        (ValidationError("bad input"), 422),
        (PersistenceError("db down"), 503),
        (DomainException("unmapped"), 500),
    ],
)
def test_status_codes(error, status_code):
    assert to_http_error(error, "req-1").status_code == status_code


def test_unexpected_errors_hide_details():
    http_error = to_http_error(DomainException("connection string leaked"), "req-1")
    assert http_error.detail == "Internal server error"
