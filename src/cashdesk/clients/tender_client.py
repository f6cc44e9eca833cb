from __future__ import annotations

from dataclasses import dataclass

from ..models import TenderMethod
from .base import BaseClient, parse_list


@dataclass
class TenderClient(BaseClient):
    module: str = "tender_methods"

    async def list_tender_methods(self, active_only: bool = True) -> list[TenderMethod]:
        params = {"active": "true"} if active_only else None
        data = await self._request("GET", "/tender-methods", params=params, operation="list_tender_methods")
        methods = parse_list(TenderMethod, data, "tender methods")
        if active_only:
            return [method for method in methods if method.active]
        return methods
