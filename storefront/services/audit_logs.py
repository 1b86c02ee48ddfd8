"""
Security Audit Log Service

The backend exposes one endpoint per filter combination rather than a single
filter endpoint, so the active filters pick the endpoint:

    username + event type   ->  /audit-logs/filter
    username                ->  /audit-logs/user/{username}
    event type              ->  /audit-logs/event-type/{type}
    start + end date        ->  /audit-logs/date-range
    nothing                 ->  /audit-logs (sorted by timestamp, newest first)

Only one route applies at a time; a date range is ignored while a username
or event type is set.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from storefront.clients.resources import AuditLogsApi
from storefront.domain.listing import AuditLogFilter, ListQuery, audit_log_query
from storefront.domain.models import Page, SecurityAuditLog, SecurityEventType
from storefront.services.mutations import ListState, load_into


def audit_log_route(filters: AuditLogFilter) -> str:
    """Name of the endpoint serving ``filters``"""
    if filters.username and filters.event_type:
        return "filter"
    if filters.username:
        return "user"
    if filters.event_type:
        return "event-type"
    if filters.start_date and filters.end_date:
        return "date-range"
    return "all"


class AuditLogService:

    def __init__(self, api: AuditLogsApi):
        self.api = api

    def new_state(self, query: Optional[ListQuery[AuditLogFilter]] = None) -> ListState[SecurityAuditLog]:
        return ListState(query=query or audit_log_query())

    async def fetch_page(self, query: ListQuery[AuditLogFilter]) -> Page[SecurityAuditLog]:
        filters = query.filters
        route = audit_log_route(filters)
        if route == "filter":
            return await self.api.by_user_and_event_type(filters.username, filters.event_type, query.page, query.size)
        if route == "user":
            return await self.api.by_user(filters.username, query.page, query.size)
        if route == "event-type":
            return await self.api.by_event_type(filters.event_type, query.page, query.size)
        if route == "date-range":
            return await self.api.by_date_range(filters.start_date, filters.end_date, query.page, query.size)
        return await self.api.all(query)

    async def load(
        self,
        state: ListState[SecurityAuditLog],
        query: Optional[ListQuery[AuditLogFilter]] = None,
    ) -> ListState[SecurityAuditLog]:
        return await load_into(state, self.fetch_page, query)

    async def recent_failed_logins(self, username: str, minutes: int = 60) -> Any:
        return await self.api.recent_failed_logins(username, minutes)

    async def event_counts(self, start: datetime, end: datetime) -> Dict[str, int]:
        """Events per type within a window, for the summary cards"""
        return {
            event_type.value: await self.api.count(event_type, start, end)
            for event_type in SecurityEventType
        }
