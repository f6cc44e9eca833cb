from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from ..backend import Backend
from ..exceptions import AlreadySelectedError, ApiError, InvalidStateError, PartialFetchError, ValidationError
from ..models import GroupedLineItem, LineItem, LineItemStatus, Tab
from ..money import ZERO, round2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Aggregation:
    generation: int
    tabs: list[Tab]
    consumption_total: Decimal
    items: list[GroupedLineItem]
    failed_tabs: list[str] = field(default_factory=list)
    errors: dict[str, ApiError] = field(default_factory=dict)

    @property
    def partial_error(self) -> PartialFetchError | None:
        if not self.failed_tabs:
            return None
        names = ", ".join(self.failed_tabs)
        return PartialFetchError(
            code="PARTIAL_FETCH",
            message=f"Could not load items for tab(s) {names}",
            details={
                "failed_tabs": list(self.failed_tabs),
                "errors": {number: exc.code for number, exc in self.errors.items()},
            },
        )


def aggregate(
    tabs: Sequence[Tab],
    items_by_tab: Mapping[str, Iterable[LineItem]],
    *,
    generation: int = 0,
    failed: Mapping[str, ApiError] | None = None,
) -> Aggregation:
    """Merge tabs into one flat, display-tagged item list.

    The consumption total is the sum of each tab's own running total; line
    items can lag behind it and are never summed.
    """
    grouped: list[GroupedLineItem] = []
    total = ZERO
    for tab in tabs:
        total += tab.consumption_total
        for item in items_by_tab.get(tab.id, ()):
            if item.status is not LineItemStatus.ACTIVE:
                continue
            grouped.append(GroupedLineItem(item=item, tab_number=tab.number, customer_name=tab.customer_name))
    failed = dict(failed or {})
    return Aggregation(
        generation=generation,
        tabs=list(tabs),
        consumption_total=round2(total),
        items=grouped,
        failed_tabs=[tab.number for tab in tabs if tab.number in failed],
        errors=failed,
    )


class TabAggregator:
    def __init__(self, backend: Backend) -> None:
        self._backend = backend
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def invalidate(self) -> int:
        """Supersede any aggregation still in flight."""
        self._generation += 1
        return self._generation

    async def resolve_by_number(self, number: str, held: Sequence[Tab] = ()) -> Tab:
        identifier = (number or "").strip()
        if not identifier:
            raise ValidationError(code="TAB_NUMBER_REQUIRED", message="Enter a tab number")
        if any(tab.number == identifier for tab in held):
            raise AlreadySelectedError(
                code="TAB_ALREADY_SELECTED",
                message=f"Tab {identifier} is already in this checkout",
                status_code=409,
            )
        tab = await self._backend.resolve_tab_by_number(identifier)
        if any(existing.id == tab.id for existing in held):
            raise AlreadySelectedError(
                code="TAB_ALREADY_SELECTED",
                message=f"Tab {tab.number} is already in this checkout",
                status_code=409,
            )
        if not tab.is_open:
            raise InvalidStateError(
                code="TAB_NOT_OPEN",
                message=f"Tab {tab.number} is {tab.status.value.lower()}",
                details={"status": tab.status.value},
            )
        return tab

    async def load(self, tabs: Sequence[Tab]) -> Aggregation | None:
        """Fetch every tab's items concurrently and aggregate them.

        Returns ``None`` when a newer :meth:`load` or :meth:`invalidate`
        happened while this one was awaiting the backend.
        """
        generation = self.invalidate()
        results = await asyncio.gather(
            *(self._backend.list_tab_items(tab.id) for tab in tabs),
            return_exceptions=True,
        )
        if generation != self._generation:
            logger.info("stale_aggregation_discarded", extra={"generation": generation, "current": self._generation})
            return None

        items_by_tab: dict[str, list[LineItem]] = {}
        failed: dict[str, ApiError] = {}
        for tab, result in zip(tabs, results):
            if isinstance(result, ApiError):
                logger.warning("tab_items_fetch_failed", extra={"tab": tab.number, "code": result.code})
                failed[tab.number] = result
            elif isinstance(result, BaseException):
                raise result
            else:
                items_by_tab[tab.id] = list(result)
        return aggregate(tabs, items_by_tab, generation=generation, failed=failed)
