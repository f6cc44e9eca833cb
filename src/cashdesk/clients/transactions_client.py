from __future__ import annotations

from dataclasses import dataclass

from ..idempotency import idempotency_headers
from ..models import FinalizeTransactionRequest, FinalizeTransactionResponse
from .base import BaseClient, parse_model


@dataclass
class TransactionsClient(BaseClient):
    module: str = "transactions"

    async def finalize_transaction(
        self,
        request: FinalizeTransactionRequest,
        idempotency_key: str,
    ) -> str:
        """Book a settled checkout group.

        The idempotency key is the checkout group's own id, so a retry after
        an ambiguous failure cannot create a second transaction server-side.
        """
        data = await self._request(
            "POST",
            "/transactions/finalize",
            json_body=request.model_dump(mode="json"),
            headers=idempotency_headers(idempotency_key),
            operation="finalize_transaction",
        )
        return parse_model(FinalizeTransactionResponse, data, "finalize transaction").transaction_id
