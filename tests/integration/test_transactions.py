"""Integration tests for the transaction boundary"""

import pytest
from sqlalchemy.orm.exc import StaleDataError
from procurement_gateway.config import settings
from procurement_gateway.domain.exceptions import PersistenceError
from procurement_gateway.services.transactions import run_atomic


def always_stale(calls: list):
    def unit():
        calls.append(1)
        raise StaleDataError("concurrent update")

    return unit


@pytest.mark.parametrize("max_retries, expected_attempts", [(0, 1), (1, 1), (2, 2)])
def test_explicit_retry_limit_is_honored(db, max_retries, expected_attempts):
    calls = []

    with pytest.raises(PersistenceError):
        run_atomic(db, "test_unit", always_stale(calls), max_retries=max_retries)

    assert len(calls) == expected_attempts


def test_retry_limit_defaults_to_settings(db):
    calls = []

    with pytest.raises(PersistenceError):
        run_atomic(db, "test_unit", always_stale(calls))

    assert len(calls) == settings.transaction_max_retries


def test_other_errors_are_not_retried(db):
    calls = []

    def unit():
        calls.append(1)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_atomic(db, "test_unit", unit)

    assert len(calls) == 1
