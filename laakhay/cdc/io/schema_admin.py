"""Schema administration over an HTTP database admin API.

Applies DDL through ``PATCH {database}/ddl`` and polls the returned
long-running operation until the statements are applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from ..core.exceptions import SchemaAdminError
from ..utils.http import HTTPClient

logger = logging.getLogger(__name__)


class HttpSchemaAdmin:
    """SchemaAdmin backed by a REST admin endpoint.

    Args:
        base_url: Admin API root, e.g. ``https://admin.example.com/v1``
        database: Database resource path, e.g. ``projects/p/instances/i/databases/d``
        poll_interval: Delay between operation polls (seconds)
        timeout: Give up waiting for the operation after this many seconds
        http: Optional preconfigured client (tests inject a mock)
    """

    def __init__(
        self,
        base_url: str,
        database: str,
        *,
        poll_interval: float = 1.0,
        timeout: float = 300.0,
        http: HTTPClient | None = None,
    ) -> None:
        self._database = database.strip("/")
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._http = http or HTTPClient(base_url=base_url)

    async def update_ddl(self, statements: Sequence[str]) -> None:
        """Apply ``statements`` and wait for the operation to complete.

        Raises:
            SchemaAdminError: If the request is rejected, the operation fails
                or it does not complete within the timeout
        """
        logger.debug(f"Applying {len(statements)} DDL statement(s) to {self._database}")
        try:
            operation = await self._http.patch(
                f"{self._database}/ddl", json_body={"statements": list(statements)}
            )
        except aiohttp.ClientResponseError as e:
            raise SchemaAdminError(f"DDL update rejected: {e.message}", status_code=e.status) from e
        except aiohttp.ClientError as e:
            raise SchemaAdminError(f"DDL update failed: {e}") from e

        try:
            await asyncio.wait_for(self._wait_for_operation(operation), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise SchemaAdminError(
                f"DDL operation {operation.get('name')} did not complete in {self._timeout}s"
            ) from e
        logger.info(f"Applied {len(statements)} DDL statement(s) to {self._database}")

    async def _wait_for_operation(self, operation: dict[str, Any]) -> None:
        name = operation.get("name")
        while not operation.get("done", False):
            if not name:
                raise SchemaAdminError("DDL operation has no name to poll")
            await asyncio.sleep(self._poll_interval)
            try:
                operation = await self._http.get(name)
            except aiohttp.ClientResponseError as e:
                raise SchemaAdminError(
                    f"Polling DDL operation {name} failed: {e.message}", status_code=e.status
                ) from e
            except aiohttp.ClientError as e:
                raise SchemaAdminError(f"Polling DDL operation {name} failed: {e}") from e

        error = operation.get("error")
        if error:
            raise SchemaAdminError(
                f"DDL operation {name} failed: {error.get('message', error)}",
                status_code=error.get("code"),
            )

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> HttpSchemaAdmin:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
