"""HTTP fetch primitive for refresh passes.

Fetches one responsibility's data from the warehouse backend and reports
the attempt as a RawActivityRecord. What happens to the fetched rows is up
to an injected sink (local persistence is outside this package); the sink
reports how many rows it stored.

Two response shapes are supported:
- ``table``: a JSON array whose first element is the header row, followed
  by value rows. 204 means no data.
- ``json``: a metadata document at ``<url>/metadata`` plus a data document
  that is either an array or an object holding the array under any key.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from wmsync.activity.models import (
    ORG_ID_PENDING,
    ActivityStatus,
    RawActivityRecord,
    utc_now,
)
from wmsync.errors import (
    InvalidResponseError,
    NetworkUnavailableError,
    RemoteCallFailedError,
)
from wmsync.refresh.registry import ResponsibilityRegistry

logger = logging.getLogger(__name__)

Row = dict[str, Any]
RecordSink = Callable[[str, list[Row], Mapping[str, Any] | None], Awaitable[int]]


async def counting_sink(
    responsibility: str, rows: list[Row], metadata: Mapping[str, Any] | None
) -> int:
    """Sink that stores nothing and reports every row as inserted."""
    return len(rows)


def extract_data_array(responsibility: str, payload: Any) -> list[Any]:
    """Find the data array in a JSON API response.

    Args:
        responsibility: Responsibility the payload belongs to.
        payload: Decoded JSON body.

    Returns:
        The payload itself if it is a list, else the first list value of
        the payload object.

    Raises:
        InvalidResponseError: If no array can be found.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key, value in payload.items():
            if isinstance(value, list):
                logger.debug("Found %d rows under '%s' for %s", len(value), key, responsibility)
                return value
        raise InvalidResponseError(responsibility, "no array found in response")
    raise InvalidResponseError(responsibility, "response is not a JSON object or array")


def parse_table_payload(responsibility: str, payload: Any) -> list[Row]:
    """Turn a header-plus-rows table response into row dictionaries.

    Raises:
        InvalidResponseError: If headers are missing or null, or a row's
            column count differs from the header row.
    """
    if not isinstance(payload, list) or not payload:
        raise InvalidResponseError(responsibility, "invalid table type response format")

    headers = payload[0]
    if not isinstance(headers, list) or any(h is None for h in headers):
        raise InvalidResponseError(responsibility, "invalid column headers in table response")

    rows: list[Row] = []
    for row in payload[1:]:
        if not isinstance(row, list) or len(row) != len(headers):
            raise InvalidResponseError(
                responsibility, "inconsistent column count in table response"
            )
        rows.append(dict(zip(headers, row)))
    return rows


class HttpResponsibilityFetcher:
    """Fetch primitive that calls the backend API of a responsibility."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: ResponsibilityRegistry,
        org_id: str | None = None,
        default_org_id: str | None = None,
        sink: RecordSink = counting_sink,
        last_sync_times: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: httpx client whose base_url points at the backend.
                Request timeouts are taken from the client.
            registry: API configuration per responsibility.
            org_id: Selected inventory organization.
            default_org_id: The user's default organization.
            sink: Stores fetched rows and returns the inserted count.
            last_sync_times: Last-sync segment per responsibility, for
                incremental APIs. Missing entries request everything.
        """
        self._client = client
        self._registry = registry
        self._org_id = org_id
        self._default_org_id = default_org_id
        self._sink = sink
        self._last_sync_times = dict(last_sync_times or {})

    async def __call__(self, responsibility: str) -> list[RawActivityRecord]:
        """Fetch one responsibility.

        Returns:
            A single successful activity record for the call.

        Raises:
            InvalidResponsibilityError: Unknown responsibility.
            NetworkUnavailableError: The backend could not be reached.
            RemoteCallFailedError: Timeout, HTTP error or bad payload.
        """
        config = self._registry.get(responsibility)
        try:
            path = self._registry.build_path(
                responsibility,
                org_id=self._org_id,
                default_org_id=self._default_org_id,
                last_sync_time=self._last_sync_times.get(responsibility, "''"),
            )
        except ValueError as e:
            raise RemoteCallFailedError(responsibility, str(e)) from e

        started_at = utc_now()
        metadata: Mapping[str, Any] | None = None

        if config.table_type == "table":
            response = await self._get(responsibility, path)
            if response.status_code == 204:
                rows: list[Row] = []
            else:
                self._expect_ok(responsibility, response, "Data")
                rows = parse_table_payload(responsibility, self._json(responsibility, response))
        else:
            metadata_response = await self._get(
                responsibility, self._registry.metadata_path(responsibility)
            )
            self._expect_ok(responsibility, metadata_response, "Metadata")
            metadata = self._json(responsibility, metadata_response)

            response = await self._get(responsibility, path)
            self._expect_ok(responsibility, response, "Data")
            data = extract_data_array(responsibility, self._json(responsibility, response))
            rows = [row if isinstance(row, dict) else {"value": row} for row in data]

        inserted = await self._sink(responsibility, rows, metadata)
        logger.info(
            "Fetched %s: %d rows, %d inserted", responsibility, len(rows), inserted
        )

        completed_at = utc_now()
        return [
            RawActivityRecord(
                api_name=responsibility,
                status=ActivityStatus.success,
                api_type=config.type,
                org_id=self._org_id or self._default_org_id or ORG_ID_PENDING,
                url=path,
                total_records=len(rows),
                inserted_records=inserted,
                started_at=started_at,
                completed_at=completed_at,
            )
        ]

    async def _get(self, responsibility: str, path: str) -> httpx.Response:
        url = path if path.startswith("/") else f"/{path}"
        logger.debug("GET %s for %s", url, responsibility)
        try:
            return await self._client.get(url)
        except httpx.ConnectError as e:
            raise NetworkUnavailableError(responsibility) from e
        except httpx.TimeoutException as e:
            raise RemoteCallFailedError(responsibility, "request timed out") from e
        except httpx.TransportError as e:
            raise RemoteCallFailedError(responsibility, str(e) or type(e).__name__) from e

    @staticmethod
    def _expect_ok(responsibility: str, response: httpx.Response, what: str) -> None:
        if response.status_code != 200:
            raise RemoteCallFailedError(
                responsibility,
                f"{what} API failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _json(responsibility: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(responsibility, "response is not valid JSON") from e
