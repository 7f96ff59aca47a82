"""Confirm primitive for load-to-dock transactions.

Posts every pending load-to-dock transaction to the backend in one request
and records the per-transaction verdict in the local store.
"""

import logging
from typing import Any

import httpx

from wmsync.db.models import TransactionStatus
from wmsync.errors import (
    InvalidResponseError,
    NetworkUnavailableError,
    RemoteCallFailedError,
)
from wmsync.services.transaction_store import PendingTransaction, SqlPendingTransactionStore
from wmsync.sync.models import ConfirmResult

logger = logging.getLogger(__name__)

LOAD_TO_DOCK = "LOAD_TO_DOCK"
DEFAULT_ENDPOINT = "EBS/23B/createLoadtoDockwms"

# Fields forwarded from the stored payload, in request order.
INPUT_FIELDS = (
    "InventoryOrgId",
    "DockDoor",
    "LpnNumber",
    "TransactionDate",
    "UserId",
    "ResponsibilityId",
)


def build_input(transaction: PendingTransaction) -> dict[str, Any]:
    """Request entry for one stored transaction."""
    entry: dict[str, Any] = {"MobileTransactionId": transaction.id}
    for name in INPUT_FIELDS:
        entry[name] = transaction.payload.get(name)
    return entry


class LoadToDockConfirmer:
    """Sends pending load-to-dock transactions to the backend."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        store: SqlPendingTransactionStore,
        endpoint: str = DEFAULT_ENDPOINT,
    ) -> None:
        self._client = client
        self._store = store
        self._endpoint = endpoint if endpoint.startswith("/") else f"/{endpoint}"

    async def __call__(self, responsibility: str) -> ConfirmResult:
        """Confirm the pending transactions of a responsibility.

        Returns:
            Success when every transaction was accepted or nothing was
            pending; otherwise a failure naming the backend messages.

        Raises:
            NetworkUnavailableError: The backend could not be reached.
            RemoteCallFailedError: Timeout or HTTP error status.
            InvalidResponseError: The body is not JSON.
        """
        pending = await self._store.list_pending(responsibility)
        if not pending:
            logger.info("No pending %s transactions to process", responsibility)
            return ConfirmResult(success=True)

        body = {"Input": [build_input(t) for t in pending]}
        logger.info("Sending %d %s transaction(s)", len(pending), responsibility)

        try:
            response = await self._client.post(self._endpoint, json=body)
        except httpx.ConnectError as e:
            raise NetworkUnavailableError(responsibility) from e
        except httpx.TimeoutException as e:
            raise RemoteCallFailedError(responsibility, "request timed out") from e
        except httpx.TransportError as e:
            raise RemoteCallFailedError(responsibility, str(e) or type(e).__name__) from e

        if response.is_error:
            raise RemoteCallFailedError(
                responsibility,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(responsibility, "response is not valid JSON") from e

        entries = data.get("Response") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return ConfirmResult(success=False, error="Invalid response format from EBS API")

        known = {t.id for t in pending}
        failures: list[str] = []
        confirmed = 0
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            transaction_id = str(entry.get("MobileTransactionId", ""))
            status = str(entry.get("ReturnStatus") or "").lower()
            message = entry.get("ReturnMessage") or ""
            if status not in ("e", "s"):
                continue
            if transaction_id not in known:
                logger.warning("Response names unknown transaction %s", transaction_id)
                continue

            if status == "e":
                failures.append(message or "Transaction failed")
                new_status = TransactionStatus.failed
            else:
                confirmed += 1
                new_status = TransactionStatus.synced
            await self._store.mark_status(
                transaction_id, new_status, error_message=message or None
            )

        if failures:
            return ConfirmResult(
                success=False,
                error=f"Transaction failed: {'; '.join(failures)}",
                confirmed=confirmed,
            )
        return ConfirmResult(success=True, confirmed=confirmed)
