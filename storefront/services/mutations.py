"""
Mutation Reconciliation

Every write a screen performs follows the same steps: show the expected
result immediately, send the mutation, then replace the optimistic state
with the server's answer. If anything fails the optimistic state is rolled
back before the error propagates, so a view never keeps showing a change
the server did not accept.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

import structlog

from storefront.domain.listing import ListQuery, PageControls
from storefront.domain.models import Page
from storefront.errors import ClassifiedError, StorefrontError

logger = structlog.get_logger(__name__)

R = TypeVar("R")
T = TypeVar("T")


async def mutate_and_reconcile(
    mutation: Callable[[], Awaitable[R]],
    apply_optimistic: Optional[Callable[[], None]] = None,
    revert: Optional[Callable[[], None]] = None,
    refetch: Optional[Callable[[R], Awaitable[Any]]] = None,
    label: str = "mutation",
) -> R:
    """
    Apply an optimistic change, run ``mutation``, then ``refetch``.

    Args:
        mutation: The server call
        apply_optimistic: Puts the expected state on screen before the call
        revert: Restores the pre-mutation state
        refetch: Loads the authoritative state; receives the mutation result
        label: Name used in log events

    Returns:
        The mutation's result

    Raises:
        Whatever the mutation or refetch raised (including cancellation),
        after ``revert`` has run
    """
    if apply_optimistic is not None:
        apply_optimistic()

    try:
        result = await mutation()
        if refetch is not None:
            await refetch(result)
    except BaseException as e:
        if revert is not None:
            revert()
        logger.info("Mutation rolled back", mutation=label, error_type=type(e).__name__)
        raise

    logger.debug("Mutation reconciled", mutation=label)
    return result


@dataclass
class ListState(Generic[T]):
    """
    View state of one list screen.

    A failed load keeps the previously shown page and sets ``error``; the
    view offers a retry when ``retryable`` is true.
    """
    query: ListQuery
    page: Optional[Page] = None
    error: Optional[ClassifiedError] = None
    notifications: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def items(self) -> List[T]:
        return list(self.page.items) if self.page is not None else []

    @property
    def controls(self) -> Optional[PageControls]:
        return PageControls.from_page(self.page) if self.page is not None else None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.is_retryable

    def notify(self, error: ClassifiedError, title: str = "Error") -> None:
        self.notifications.append(error.to_notification(title))

    def replace_item(self, match: Callable[[T], bool], item: T) -> bool:
        """Swap the first matching row in place; False when not on this page"""
        if self.page is None:
            return False
        for index, existing in enumerate(self.page.items):
            if match(existing):
                self.page.items[index] = item
                return True
        return False

    def remove_item(self, match: Callable[[T], bool]) -> Optional[T]:
        if self.page is None:
            return None
        for index, existing in enumerate(self.page.items):
            if match(existing):
                return self.page.items.pop(index)
        return None

    def insert_item(self, index: int, item: T) -> None:
        if self.page is not None:
            self.page.items.insert(index, item)


async def load_into(state: ListState, loader: Callable[[ListQuery], Awaitable[Page]], query: Optional[ListQuery] = None) -> ListState:
    """
    Load ``query`` (default: the state's query) into ``state``.

    On failure the previous page stays in place and the error is recorded.
    """
    query = query or state.query
    try:
        page = await loader(query)
    except StorefrontError as e:
        state.error = e.to_classified()
        logger.warning("List load failed", category=state.error.category.value, page=query.page)
        return state
    state.query = query
    state.page = page
    state.error = None
    return state
