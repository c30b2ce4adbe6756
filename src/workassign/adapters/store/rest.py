"""REST transport for the hosted document store.

Speaks the store's v1 REST API with documents encoded as tagged wire
values (see codec.py). Used as the fallback path when the primary client
cannot reach the backend.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

import httpx
import structlog

from workassign.adapters.store.codec import ValueCodec
from workassign.adapters.store.query import Direction, Operator, Query
from workassign.core.exceptions import EntityNotFound, StoreRequestError, TransportUnavailable

logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://firestore.googleapis.com/v1"

TokenProvider = Callable[[], Awaitable[str | None]]

OPERATORS: dict[Operator, str] = {
    Operator.EQ: "EQUAL",
    Operator.ARRAY_CONTAINS: "ARRAY_CONTAINS",
    Operator.LE: "LESS_THAN_OR_EQUAL",
    Operator.GE: "GREATER_THAN_OR_EQUAL",
    Operator.LT: "LESS_THAN",
    Operator.GT: "GREATER_THAN",
    Operator.IN: "IN",
}

DIRECTIONS: dict[Direction, str] = {
    Direction.ASC: "ASCENDING",
    Direction.DESC: "DESCENDING",
}


class RestDocumentStore:
    """Document store over the hosted REST API."""

    def __init__(
        self,
        project_id: str,
        token_provider: TokenProvider | None = None,
        timeout_seconds: float = 10.0,
        base_url: str = DEFAULT_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        codec: ValueCodec | None = None,
    ) -> None:
        """Initialize the REST store.

        Args:
            project_id: Hosted project id.
            token_provider: Returns the bearer token for each request.
            timeout_seconds: Per-request timeout.
            base_url: API root.
            transport: Optional httpx transport (tests use MockTransport).
            codec: Wire value codec.
        """
        self.project_id = project_id
        self.token_provider = token_provider
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.codec = codec or ValueCodec()

    @property
    def documents_root(self) -> str:
        """Resource name prefix of all documents."""
        return f"projects/{self.project_id}/databases/(default)/documents"

    def new_id(self) -> str:
        """Generate an id for a new document."""
        return uuid4().hex

    async def get(self, path: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document, or None if it does not exist."""
        response = await self._request("GET", f"{path}/{doc_id}", allow_not_found=True)
        if response is None:
            return None
        return self.codec.decode_document(response.json())

    async def list(self, path: str, query: Query) -> list[dict[str, Any]]:
        """Run a structured query against a collection."""
        parent, _, collection_id = path.rpartition("/")
        structured: dict[str, Any] = {"from": [{"collectionId": collection_id}]}

        where = self._where(query)
        if where is not None:
            structured["where"] = where

        order_by = [
            {"field": {"fieldPath": o.field}, "direction": DIRECTIONS[o.direction]}
            for o in query.order_by
        ]

        if query.start_after is not None:
            cursor = await self.get(path, query.start_after)
            if cursor is None:
                return []
            last = query.order_by[-1].direction if query.order_by else Direction.ASC
            order_by.append({"field": {"fieldPath": "__name__"}, "direction": DIRECTIONS[last]})
            values = [self.codec.encode(cursor.get(o.field)) for o in query.order_by]
            values.append(
                {"referenceValue": f"{self.documents_root}/{path}/{query.start_after}"}
            )
            structured["startAt"] = {"values": values, "before": False}

        if order_by:
            structured["orderBy"] = order_by
        if query.limit is not None:
            structured["limit"] = query.limit

        response = await self._request(
            "POST", f"{parent}:runQuery", json={"structuredQuery": structured}
        )
        return [
            self.codec.decode_document(item["document"])
            for item in response.json()
            if item.get("document")
        ]

    async def set(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document."""
        await self._request(
            "PATCH", f"{path}/{doc_id}", json={"fields": self.codec.encode_fields(data)}
        )

    async def update(self, path: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Merge fields into an existing document.

        Raises:
            EntityNotFound: If the document does not exist.
        """
        params: list[tuple[str, str]] = [("currentDocument.exists", "true")]
        params.extend(("updateMask.fieldPaths", key) for key in patch if key != "id")
        response = await self._request(
            "PATCH",
            f"{path}/{doc_id}",
            params=params,
            json={"fields": self.codec.encode_fields(patch)},
            allow_not_found=True,
        )
        if response is None:
            raise EntityNotFound(path.rsplit("/", 1)[-1], doc_id)

    async def delete(self, path: str, doc_id: str) -> None:
        """Delete a document. Missing documents are ignored."""
        await self._request("DELETE", f"{path}/{doc_id}", allow_not_found=True)

    def _where(self, query: Query) -> dict[str, Any] | None:
        filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": p.field},
                    "op": OPERATORS[p.op],
                    "value": self.codec.encode(list(p.value) if p.op == Operator.IN else p.value),
                }
            }
            for p in query.predicates
        ]
        if not filters:
            return None
        if len(filters) == 1:
            return filters[0]
        return {"compositeFilter": {"op": "AND", "filters": filters}}

    async def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token_provider is not None:
            token = await self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        resource: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Send a request and translate transport failures.

        Returns:
            The response, or None for a 404 when allow_not_found is set.

        Raises:
            TransportUnavailable: On network errors, timeouts and 5xx.
            StoreRequestError: On any other non-2xx response.
        """
        url = f"{self.base_url}/{self.documents_root}/{resource}"
        headers = await self._headers()

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    headers=headers,
                    timeout=self.timeout_seconds,
                    **kwargs,
                )
        except httpx.TimeoutException as e:
            logger.warning("store_rest_timeout", method=method, resource=resource)
            raise TransportUnavailable(f"Document store timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error("store_rest_error", method=method, resource=resource, error=str(e))
            raise TransportUnavailable(f"Document store unreachable: {e}") from e

        if response.status_code == 404 and allow_not_found:
            return None
        if response.status_code >= 500:
            logger.warning(
                "store_rest_unavailable",
                method=method,
                resource=resource,
                status_code=response.status_code,
            )
            raise TransportUnavailable(f"Document store returned {response.status_code}")
        if not response.is_success:
            raise StoreRequestError(
                f"Document store rejected {method} {resource}",
                status_code=response.status_code,
                details=_error_details(response),
            )
        return response


def _error_details(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"body": response.text}
    if isinstance(body, dict):
        return body.get("error", body)
    return {"body": body}
