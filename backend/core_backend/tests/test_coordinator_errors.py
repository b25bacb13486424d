"""
Error Handling Tests

The error taxonomy, its HTTP mapping and the transition tables that raise it.
"""
from decimal import Decimal

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.db import IntegrityError, OperationalError
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated

from core_backend.config import get_coordinator_settings
from core_backend.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    coordinator_exception_handler,
    translate_database_errors,
)
from core_backend.state_machine import TransitionTable
from floor.models import Table
from floor.transitions import TABLE_TRANSITIONS


class TestExceptionHandler:

    @pytest.mark.parametrize(
        "error, expected_status, kind",
        [
            (ValidationError("bad"), status.HTTP_400_BAD_REQUEST, "validation_error"),
            (NotFoundError("Table", "t-1"), status.HTTP_404_NOT_FOUND, "not_found"),
            (ConflictError("raced"), status.HTTP_409_CONFLICT, "conflict"),
            (PersistenceError("down"), status.HTTP_503_SERVICE_UNAVAILABLE, "persistence_error"),
        ],
    )
    def test_coordinator_errors_map_to_status(self, error, expected_status, kind):
        response = coordinator_exception_handler(error, {})

        assert response.status_code == expected_status
        assert response.data["error"] == kind

    def test_not_found_names_the_entity(self):
        error = NotFoundError("Order", "abc")

        assert error.message == "Order abc not found"
        assert error.details == {"entity": "Order", "id": "abc"}

    def test_only_persistence_errors_are_retryable(self):
        assert PersistenceError("x").retryable
        assert not ConflictError("x").retryable

    def test_drf_errors_fall_through(self):
        response = coordinator_exception_handler(NotAuthenticated(), {})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestTranslateDatabaseErrors:

    def test_integrity_error_becomes_conflict(self):
        @translate_database_errors
        def write():
            raise IntegrityError("UNIQUE constraint failed: orders_order.order_number")

        with pytest.raises(ConflictError):
            write()

    def test_operational_error_becomes_persistence_error(self):
        @translate_database_errors
        def write():
            raise OperationalError("database is locked")

        with pytest.raises(PersistenceError) as exc_info:
            write()
        assert exc_info.value.retryable

    def test_coordinator_errors_pass_through(self):
        @translate_database_errors
        def write():
            raise NotFoundError("Table", "t-1")

        with pytest.raises(NotFoundError):
            write()


class TestTransitionTable:

    def test_allows_listed_transitions(self):
        assert TABLE_TRANSITIONS.allows(Table.TableStatus.AVAILABLE, "OCCUPIED")
        assert not TABLE_TRANSITIONS.allows("OCCUPIED", Table.TableStatus.RESERVED)

    def test_check_rejects_unknown_state(self):
        with pytest.raises(ValidationError) as exc_info:
            TABLE_TRANSITIONS.check("AVAILABLE", "FLOODED")
        assert exc_info.value.details == {"status": "FLOODED"}

    def test_terminal_states(self):
        table = TransitionTable("ticket", {"OPEN": {"CLOSED"}, "CLOSED": set()})

        assert table.is_terminal("CLOSED")
        assert not table.is_terminal("OPEN")


class TestCoordinatorSettings:

    def test_reads_tax_rate(self, settings):
        settings.FLOOR_COORDINATOR = {"TAX_RATE": "0.0725"}

        config = get_coordinator_settings()

        assert config.tax_rate == Decimal("0.0725")
        assert config.kitchen_channel == "kitchen"
        assert config.money_quantum == Decimal("0.01")

    def test_rejects_out_of_range_tax_rate(self, settings):
        settings.FLOOR_COORDINATOR = {"TAX_RATE": "1.5"}

        with pytest.raises(ImproperlyConfigured):
            get_coordinator_settings()

    def test_delivery_retry_defaults(self, settings):
        settings.FLOOR_COORDINATOR = {}

        config = get_coordinator_settings()

        assert config.delivery_attempts == 3
        assert config.delivery_retry_delay == 0.05

    def test_rejects_zero_delivery_attempts(self, settings):
        settings.FLOOR_COORDINATOR = {"DELIVERY_ATTEMPTS": 0}

        with pytest.raises(ImproperlyConfigured):
            get_coordinator_settings()
