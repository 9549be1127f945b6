"""Dispatcher — paced, deferred delivery of one request per row.

Row N is sent after N * wait_ms milliseconds. Each row gets its own task and
its own delay; a slow response never holds back later rows, so requests may
overlap. Non-2xx responses are logged and counted. A transport failure is
fatal for the run.
"""

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TextIO
from urllib.parse import quote

import httpx

from importer.core.documents import Document
from importer.core.record_types import RecordType
from importer.core.row_source import Row
from importer.core.stats import RunStats

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """Raised when a request could not be completed at the transport level."""


@dataclass
class ApiRequest:
    """One outbound request, ready to send."""
    method: str
    path: str
    body: Document
    label: Optional[str] = None


class Dispatcher:
    def __init__(
        self,
        record_type: RecordType,
        stats: RunStats,
        client: Optional[httpx.AsyncClient] = None,
        dry_run: bool = False,
        wait_ms: int = 500,
        output: Optional[TextIO] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if client is None and not dry_run:
            raise ValueError("A client is required unless dry_run is set")
        self.record_type = record_type
        self.stats = stats
        self.client = client
        self.dry_run = dry_run
        self.wait_ms = wait_ms
        self.output = output if output is not None else sys.stdout
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()
        self._failure: Optional[BaseException] = None

    def build_request(self, row: Row, document: Document) -> ApiRequest:
        """Address the document using the record type's method and path."""
        path_values = {k: quote(v, safe="") for k, v in row.items() if v is not None}
        try:
            path = self.record_type.path.format(**path_values)
        except KeyError as e:
            raise DispatchError(f"Cannot build path {self.record_type.path}: missing {e}") from None
        return ApiRequest(
            method=self.record_type.method,
            path=path,
            body=document,
            label=row.get(self.record_type.natural_key),
        )

    def delay_for(self, index: int) -> float:
        """Seconds to wait before sending the request for row `index`."""
        return index * self.wait_ms / 1000

    def schedule(self, index: int, request: ApiRequest) -> asyncio.Task:
        """Schedule the request for row `index` on its own timer."""
        delay = self.delay_for(index)
        logger.debug(f"Row {index}: {request.method} {request.path} in {delay:.3f}s")
        task = asyncio.create_task(self._send_later(delay, request))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._failure is None:
            self._failure = exc

    async def _send_later(self, delay: float, request: ApiRequest) -> None:
        await self._sleep(delay)
        await self.send(request)

    async def send(self, request: ApiRequest) -> None:
        """Send one request now (or print it in dry-run mode)."""
        if self.dry_run:
            self.output.write(f"{request.method} {request.path} {json.dumps(request.body)}\n")
            self.output.flush()
            return

        self.stats.requests += 1
        try:
            response = await self.client.request(
                request.method,
                request.path,
                json=request.body,
            )
        except httpx.RequestError as e:
            logger.error(f"Request for {request.label} failed: {e!r}")
            raise DispatchError(f"{request.method} {request.path} failed: {e!r}") from e

        self.stats.record_status(response.status_code)
        if not response.is_success:
            body = await response.aread()
            logger.error(
                f"Failed to import {request.label}: "
                f"{response.status_code} {response.reason_phrase}\n"
                f"{body.decode('utf-8', errors='replace')}"
            )

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    def raise_if_failed(self) -> None:
        """Re-raise the first fatal error from an already finished request."""
        if self._failure is not None:
            raise self._failure

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled request, raising the first fatal error."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        self.raise_if_failed()

    def cancel_pending(self) -> None:
        """Drop requests that have not been sent yet."""
        for task in list(self._tasks):
            task.cancel()
