from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..exceptions import ValidationError
from ..idempotency import idempotency_headers
from ..models import ClosedTabDetail, ClosedTabQuery, ClosedTabSummary, LineItem, Tab, TabStatus
from .base import BaseClient, parse_list, parse_model


@dataclass
class TabsClient(BaseClient):
    module: str = "tabs"

    async def resolve_tab_by_number(self, number: str) -> Tab:
        data = await self._request("GET", f"/tabs/{number}", operation="resolve_tab_by_number")
        return parse_model(Tab, data, "tab")

    async def list_open_tabs(self) -> list[Tab]:
        data = await self._request(
            "GET",
            "/tabs",
            params={"status": TabStatus.OPEN.value},
            operation="list_open_tabs",
        )
        return parse_list(Tab, data, "open tabs")

    async def list_tab_items(self, tab_id: str) -> list[LineItem]:
        data = await self._request("GET", f"/tabs/{tab_id}/items", operation="list_tab_items")
        return parse_list(LineItem, data, "tab items")

    async def cancel_line_item(self, item_id: str, reason: str, idempotency_key: str | None = None) -> None:
        if not reason or not reason.strip():
            raise ValidationError(code="REASON_REQUIRED", message="A reason is required to cancel an item")
        await self._request(
            "POST",
            f"/items/{item_id}/cancel",
            json_body={"reason": reason.strip()},
            headers=idempotency_headers(idempotency_key),
            operation="cancel_line_item",
        )

    async def list_closed_tabs(self, start: date, end: date) -> list[ClosedTabSummary]:
        query = ClosedTabQuery(start=start, end=end)
        if query.end < query.start:
            raise ValidationError(code="INVALID_RANGE", message="End date must not be before start date")
        data = await self._request(
            "GET",
            "/tabs/closed",
            params=query.model_dump(mode="json"),
            operation="list_closed_tabs",
        )
        return parse_list(ClosedTabSummary, data, "closed tabs")

    async def get_closed_tab_detail(self, number: str) -> ClosedTabDetail:
        data = await self._request("GET", f"/tabs/closed/{number}", operation="get_closed_tab_detail")
        return parse_model(ClosedTabDetail, data, "closed tab detail")
