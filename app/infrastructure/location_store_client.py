"""
Infrastructure layer: GraphQL client for the location store.

Reads are retried with exponential backoff; the bulk insert is sent exactly
once and never retried.
"""
from typing import List, Dict, Any, Optional
import logging

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.config import settings
from app.domain.models import LocationRecord, LocationWrite
from app.infrastructure.api_constants import APIConstants, LocationStoreOperations

logger = logging.getLogger(__name__)


class LocationStoreError(Exception):
    """Raised when the location store cannot serve a request."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LocationStoreClient:
    """
    Client for the location store's GraphQL endpoint.
    """

    def __init__(self):
        """Initialize the client with configuration."""
        self.base_url = settings.location_store_url
        self.graphql_path = settings.location_store_graphql_path
        self.api_key = settings.location_store_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=settings.location_store_timeout,
        )

    async def __aenter__(self) -> "LocationStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def _execute(
        self,
        query: str,
        variables: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Send one GraphQL request.

        Args:
            query: GraphQL document
            variables: Variables for the document

        Returns:
            The ``data`` member of the GraphQL response

        Raises:
            httpx.HTTPStatusError: On 5xx responses (retryable)
            httpx.RequestError: On transport failures (retryable)
            LocationStoreError: On 4xx responses or GraphQL errors
        """
        try:
            response = await self.client.post(
                self.graphql_path,
                json={"query": query, "variables": variables},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise
            raise LocationStoreError(
                f"Store request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )

        try:
            payload = response.json()
        except ValueError:
            raise LocationStoreError(
                f"Store returned a non-JSON response: {response.text[:200]}"
            )
        if not isinstance(payload, dict):
            raise LocationStoreError("Store returned an unexpected response body")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            raise LocationStoreError(f"Store rejected request: {messages}")

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise LocationStoreError("Store returned an unexpected response body")
        return data

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _execute_with_retry(
        self,
        query: str,
        variables: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Send an idempotent GraphQL request, retrying transient failures."""
        return await self._execute(query, variables)

    async def get_project_locations(self, project_id: Optional[int]) -> List[LocationRecord]:
        """
        Fetch all locations of a project.

        Args:
            project_id: Project identifier; no request is made when missing

        Returns:
            List of LocationRecord instances

        Raises:
            LocationStoreError: If the request fails after retries
        """
        if not project_id:
            return []

        try:
            data = await self._execute_with_retry(
                LocationStoreOperations.GET_PROJECT_LOCATIONS,
                {"projectId": project_id},
            )
        except httpx.HTTPStatusError as e:
            raise LocationStoreError(
                f"Store request failed: {e.response.status_code} - {e.response.text}",
                status_code=502,
            )
        except httpx.RequestError as e:
            raise LocationStoreError(f"Store request error: {str(e)}")

        try:
            return [LocationRecord(**row) for row in data.get("locations") or []]
        except (TypeError, ValidationError) as e:
            raise LocationStoreError(f"Store returned malformed locations: {e}")

    async def insert_locations_many(self, values: List[LocationWrite]) -> List[int]:
        """
        Insert a batch of locations in one mutation.

        The store applies the mutation in a single transaction, so either every
        record is inserted or none is. The request is sent once.

        Args:
            values: Validated records, each carrying its project_id

        Returns:
            Identifiers of the inserted locations, in insertion order

        Raises:
            LocationStoreError: If the store rejects the write or is unreachable
        """
        try:
            data = await self._execute(
                LocationStoreOperations.INSERT_LOCATIONS_MANY,
                {"values": [value.model_dump() for value in values]},
            )
        except httpx.HTTPStatusError as e:
            raise LocationStoreError(
                f"Store request failed: {e.response.status_code} - {e.response.text}",
                status_code=502,
            )
        except httpx.RequestError as e:
            raise LocationStoreError(f"Store request error: {str(e)}")

        try:
            returning = (data.get("insert_locations") or {}).get("returning") or []
            return [int(row["id"]) for row in returning]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise LocationStoreError(f"Store returned malformed insert result: {e!r}")


# Singleton instance
_store_client: Optional[LocationStoreClient] = None


def get_store_client() -> LocationStoreClient:
    """
    Get or create the singleton store client instance.

    Returns:
        LocationStoreClient instance
    """
    global _store_client
    if _store_client is None:
        _store_client = LocationStoreClient()
    return _store_client
