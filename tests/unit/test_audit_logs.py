"""
Unit Tests - Security Audit Logs
"""
from datetime import datetime

import pytest

from storefront.domain.listing import AuditLogFilter, audit_log_query
from storefront.domain.models import SecurityEventType
from storefront.services.audit_logs import AuditLogService, audit_log_route

START = datetime(2025, 1, 1)
END = datetime(2025, 1, 31)


@pytest.fixture
def service(api):
    return AuditLogService(api.audit_logs)


def log_entry(entry_id: int = 1, username: str = "alice", event_type: str = "LOGIN_FAILURE"):
    return {
        "id": entry_id,
        "username": username,
        "eventType": event_type,
        "ipAddress": "10.0.0.5",
        "timestamp": "2025-01-15T10:00:00",
        "success": event_type.endswith("SUCCESS"),
    }


class TestAuditLogRoute:
    """Tests for endpoint selection"""

    @pytest.mark.parametrize("filters,route", [
        (AuditLogFilter(username="alice", event_type=SecurityEventType.LOGIN_FAILURE), "filter"),
        (AuditLogFilter(username="alice"), "user"),
        (AuditLogFilter(event_type=SecurityEventType.LOGOUT), "event-type"),
        (AuditLogFilter(start_date=START, end_date=END), "date-range"),
        (AuditLogFilter(start_date=START), "all"),
        (AuditLogFilter(), "all"),
    ])
    def test_route(self, filters, route):
        assert audit_log_route(filters) == route

    def test_date_range_ignored_with_username(self):
        filters = AuditLogFilter(username="alice", start_date=START, end_date=END)
        assert audit_log_route(filters) == "user"


class TestAuditLogService:
    """Tests for loading audit-log pages"""

    async def test_username_and_event_type_use_filter_endpoint(self, backend, service, spring_page):
        backend.on("GET", "/audit-logs/filter", data=spring_page([log_entry()], size=20))
        query = audit_log_query().with_filters(username="alice", event_type=SecurityEventType.LOGIN_FAILURE)

        state = await service.load(service.new_state(query))

        params = backend.calls("GET", "/audit-logs/filter")[0].url.params
        assert params["username"] == "alice"
        assert params["eventType"] == "LOGIN_FAILURE"
        assert params["page"] == "0"
        assert params["size"] == "20"
        assert state.items[0].username == "alice"

    async def test_username_only(self, backend, service, spring_page):
        backend.on("GET", "/audit-logs/user/alice", data=spring_page([log_entry()]))

        await service.load(service.new_state(audit_log_query().with_filters(username="alice")))

        assert len(backend.calls("GET", "/audit-logs/user/alice")) == 1

    async def test_date_range(self, backend, service, spring_page):
        backend.on("GET", "/audit-logs/date-range", data=spring_page([]))
        query = audit_log_query().with_filters(start_date=START, end_date=END)

        await service.load(service.new_state(query))

        params = backend.calls("GET", "/audit-logs/date-range")[0].url.params
        assert params["startTime"] == "2025-01-01T00:00:00"
        assert params["endTime"] == "2025-01-31T00:00:00"

    async def test_unfiltered(self, backend, service, spring_page):
        backend.on("GET", "/audit-logs", data=spring_page([log_entry(1), log_entry(2, "bob", "LOGIN_SUCCESS")]))

        state = await service.load(service.new_state())

        assert [entry.id for entry in state.items] == [1, 2]
        assert state.controls.total_elements == 2

    async def test_failure_keeps_state(self, backend, service):
        backend.on("GET", "/audit-logs", status=403, body={"message": "Access denied"})

        state = await service.load(service.new_state())

        assert state.page is None
        assert state.error.is_auth_failure

    async def test_event_counts(self, backend, service):
        backend.on("GET", "/audit-logs/count", data=4)

        counts = await service.event_counts(START, END)

        assert set(counts) == {t.value for t in SecurityEventType}
        assert counts["LOGIN_FAILURE"] == 4
