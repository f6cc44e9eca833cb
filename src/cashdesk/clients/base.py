from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ResponseFormatError
from ..http_client import HttpClient

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None
    operator_id: str | None = None
    module: str = "unknown"

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.operator_id:
            headers["X-Operator-ID"] = self.operator_id
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any):
        headers = kwargs.pop("headers", {})
        merged = {**self._auth_headers(), **headers}
        kwargs.setdefault("module", self.module)
        return await self.http.request(method, path, headers=merged, **kwargs)


def parse_model(model_type: type[ModelT], data: Any, what: str) -> ModelT:
    if not isinstance(data, dict):
        raise ResponseFormatError(
            code="INVALID_RESPONSE",
            message=f"Expected {what} response to be a JSON object",
        )
    try:
        return model_type.model_validate(data)
    except PydanticValidationError as exc:
        raise ResponseFormatError(
            code="INVALID_RESPONSE",
            message=f"Unexpected {what} response shape",
            details=exc.errors(include_url=False),
        ) from exc


def parse_list(model_type: type[ModelT], data: Any, what: str) -> list[ModelT]:
    if isinstance(data, dict) and isinstance(data.get("rows"), list):
        data = data["rows"]
    if data is None:
        return []
    if not isinstance(data, list):
        raise ResponseFormatError(
            code="INVALID_RESPONSE",
            message=f"Expected {what} response to be a JSON list",
        )
    return [parse_model(model_type, row, what) for row in data]
