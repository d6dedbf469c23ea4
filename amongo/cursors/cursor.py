# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from amongo.exceptions import CursorException
from amongo.future import SingleResultFuture

T = TypeVar("T")

# None signals an exhausted cursor, while an empty list is a legitimate
# (if unusual) batch from a cursor still open on the server.
BatchType = Optional[List[T]]

logger = logging.getLogger(__name__)


class CursorState(Enum):
    """
    This enum expresses the possible states for a cursor.

    Values:
        IDLE: No batch has been requested yet (alive=T, started=F)
        STARTED: Batches are being requested, *can* still yield results (alive=T, started=T)
        CLOSED: Exhausted or forcibly closed. Won't return more documents (alive=F)
    """

    # No batch has been requested yet (alive=T, started=F)
    IDLE = "idle"
    # Batches are being requested, *can* still yield results (alive=T, started=T)
    STARTED = "started"
    # Exhausted or forcibly closed. Won't return more documents (alive=F)
    CLOSED = "closed"


@dataclass(frozen=True)
class ServerCursor:
    """The identity of a cursor held open on a server."""

    cursor_id: int
    address: str


class AsyncBatchCursor(ABC, Generic[T]):
    """
    A cursor over the results of a query, as produced by the read executor.

    Documents are fetched from the server in batches, through `next_batch`,
    which returns a future of either the next list of documents or None once
    the cursor is exhausted. The cursor is lazy, finite and cannot be
    restarted: each batch consumes server-side state.

    Cursors can also be consumed with `async for` from a coroutine.

    This class is not meant to be directly instantiated by the user: concrete
    subclasses, supplied by the executor, implement `_fetch_next_batch`.
    """

    _state: CursorState
    _retrieved: int
    _buffer: list[T]

    def __init__(self) -> None:
        self._state = CursorState.IDLE
        self._retrieved = 0
        self._buffer = []

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self._state.value}, "
            f"retrieved so far: {self._retrieved})"
        )

    def _ensure_alive(self) -> None:
        if self._state == CursorState.CLOSED:
            raise CursorException(
                text="Cursor is closed.",
                cursor_state=self._state.value,
            )

    @property
    def state(self) -> CursorState:
        """
        The current state of this cursor.

        Returns:
            a value in `amongo.cursors.CursorState`.
        """

        return self._state

    @property
    def retrieved(self) -> int:
        """The number of documents received from the server so far."""
        return self._retrieved

    @property
    @abstractmethod
    def server_cursor(self) -> ServerCursor | None:
        """
        The server-side cursor this object reads from, or None if the server
        holds nothing for it (anymore).
        """
        ...

    @abstractmethod
    def _fetch_next_batch(self) -> SingleResultFuture[BatchType[T]]: ...

    def _close(self) -> None:
        """Subclass hook, invoked once when the cursor is explicitly closed."""
        pass

    def next_batch(self) -> SingleResultFuture[BatchType[T]]:
        """
        Request the next batch of documents.

        Returns:
            a future of the list of documents in the batch, or of None if the
                cursor is exhausted (in which case the cursor becomes CLOSED).

        Raises:
            CursorException: if the cursor is already closed.
        """

        self._ensure_alive()
        self._state = CursorState.STARTED

        def _account(batch: BatchType[T]) -> BatchType[T]:
            if batch is None:
                self._state = CursorState.CLOSED
            else:
                self._retrieved += len(batch)
            return batch

        return self._fetch_next_batch().then_apply(_account)

    def close(self) -> None:
        """
        Stop this cursor. No kill-cursors request is sent from here: releasing
        the server resource is up to the owner of the connection.
        """

        if self._state != CursorState.CLOSED:
            self._state = CursorState.CLOSED
            self._buffer = []
            self._close()

    def __aiter__(self) -> AsyncBatchCursor[T]:
        self._ensure_alive()
        return self

    async def __anext__(self) -> T:
        while not self._buffer:
            if self._state == CursorState.CLOSED:
                raise StopAsyncIteration
            batch = await self.next_batch()
            if batch is None:
                raise StopAsyncIteration
            self._buffer = list(batch)
        document, self._buffer = self._buffer[0], self._buffer[1:]
        return document


class _CursorIteration(Generic[T]):
    """
    The machinery behind `iterate_cursor`. Batches already available when
    requested are processed in a loop; a batch arriving later resumes the
    loop on the thread that delivers it.
    """

    def __init__(
        self,
        cursor: AsyncBatchCursor[T],
        block: Callable[[T], Any],
        stop_on_false: bool,
    ) -> None:
        self.cursor = cursor
        self.block = block
        self.stop_on_false = stop_on_false
        self.outcome: SingleResultFuture[None] = SingleResultFuture()

    def _finish(self, error: BaseException | None) -> None:
        if error is None:
            logger.debug(f"iteration over {self.cursor!r} completed")
        else:
            logger.debug(f"iteration over {self.cursor!r} failed: {error!r}")
        self.outcome.complete(None, error)

    def run(self) -> None:
        while True:
            try:
                pending = self.cursor.next_batch()
            except Exception as exc:
                self._finish(exc)
                return
            if not pending.is_done():
                pending.register(self._on_later_batch)
                return
            batch, error = pending.outcome()
            if not self._deliver(batch, error):
                return

    def _on_later_batch(self, batch: BatchType[T], error: BaseException | None) -> None:
        if self._deliver(batch, error):
            self.run()

    def _deliver(self, batch: BatchType[T], error: BaseException | None) -> bool:
        """Hand the batch to the block. Return whether to go on iterating."""
        if error is not None:
            self._finish(error)
            return False
        if batch is None:
            self._finish(None)
            return False
        for document in batch:
            try:
                res = self.block(document)
            except Exception as exc:
                self._finish(exc)
                return False
            if self.stop_on_false and res is False:
                logger.debug(f"iteration over {self.cursor!r} stopped early")
                self._finish(None)
                return False
        return True


def iterate_cursor(
    cursor: AsyncBatchCursor[T],
    block: Callable[[T], Any],
    *,
    stop_on_false: bool = False,
) -> SingleResultFuture[None]:
    """
    Invoke `block` on each document of the cursor, in the order the cursor
    yields them.

    The value returned by the block is discarded, unless `stop_on_false` is
    set: then a block returning the boolean `False` stops the iteration there,
    leaving the cursor half-consumed.

    Returns:
        a future completed with no value once the cursor is exhausted
            (or the block asked to stop), or with the first error met, be it
            raised while fetching a batch or by the block. An error stops the
            iteration: documents already handed to the block stay delivered.
    """

    iteration = _CursorIteration(cursor, block, stop_on_false)
    iteration.run()
    return iteration.outcome
