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

"""
Main conftest: in-memory stand-ins for the executor and its cursors.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, TypeVar

import pytest

from amongo import AsyncCollection, Namespace
from amongo.constants import ReadPreference
from amongo.cursors.cursor import AsyncBatchCursor, BatchType, ServerCursor
from amongo.future import SingleResultFuture
from amongo.operations import (
    CountOperation,
    FindOperation,
    ReadOperation,
    WriteOperation,
)
from amongo.results import WriteConcernResult

T = TypeVar("T")

DefaultAsyncCollection = AsyncCollection[Dict[str, Any]]

TEST_NAMESPACE = Namespace("test_db", "test_coll")


def _complete_later(
    future: SingleResultFuture[Any],
    value: Any = None,
    error: BaseException | None = None,
) -> None:
    threading.Timer(0.005, future.complete, args=(value, error)).start()


class ListBatchCursor(AsyncBatchCursor[T]):
    """
    A cursor serving pre-arranged batches. With `fail_at` set, the request
    for the batch at that index fails with `error`. With `threaded` set,
    batches are delivered on a separate thread.
    """

    def __init__(
        self,
        batches: List[List[T]],
        *,
        fail_at: Optional[int] = None,
        error: Optional[BaseException] = None,
        threaded: bool = False,
        cursor_id: int = 12345,
    ) -> None:
        super().__init__()
        self.batches = batches
        self.fail_at = fail_at
        self.error = error or RuntimeError("batch failure")
        self.threaded = threaded
        self.cursor_id = cursor_id
        self.requests = 0
        self.closed_by_hook = False

    @property
    def server_cursor(self) -> ServerCursor | None:
        if self.requests >= len(self.batches):
            return None
        return ServerCursor(cursor_id=self.cursor_id, address="localhost:27017")

    def _fetch_next_batch(self) -> SingleResultFuture[BatchType[T]]:
        index = self.requests
        self.requests += 1
        future: SingleResultFuture[BatchType[T]] = SingleResultFuture()
        if index == self.fail_at:
            value, error = None, self.error
        elif index < len(self.batches):
            value, error = list(self.batches[index]), None
        else:
            value, error = None, None
        if self.threaded:
            _complete_later(future, value, error)
        else:
            future.complete(value, error)
        return future

    def _close(self) -> None:
        self.closed_by_hook = True


class RecordingExecutor:
    """
    An executor recording every operation it receives. Reads of documents
    are answered with a ListBatchCursor over `documents` (split according
    to the operation batch size), counts with `count`, writes with an
    acknowledged result counting the requests.
    """

    def __init__(
        self,
        *,
        documents: Optional[List[Any]] = None,
        count: int = 0,
        threaded: bool = False,
        failure: Optional[BaseException] = None,
        raise_on_submit: Optional[BaseException] = None,
    ) -> None:
        self.documents = documents or []
        self.count = count
        self.threaded = threaded
        self.failure = failure
        self.raise_on_submit = raise_on_submit
        self.reads: List[tuple[ReadOperation, ReadPreference]] = []
        self.writes: List[WriteOperation] = []
        self.cursors: List[ListBatchCursor[Any]] = []

    def _answer(self, value: Any) -> SingleResultFuture[Any]:
        future: SingleResultFuture[Any] = SingleResultFuture()
        if self.threaded:
            _complete_later(future, None if self.failure else value, self.failure)
        else:
            future.complete(None if self.failure else value, self.failure)
        return future

    def _batches(self, operation: FindOperation[Any]) -> List[List[Any]]:
        documents = list(self.documents)
        if operation.single_result:
            return [documents[:1]] if documents else []
        if operation.limit > 0:
            documents = documents[: operation.limit]
        size = operation.batch_size or 2
        return [documents[i : i + size] for i in range(0, len(documents), size)]

    def execute_read(
        self,
        operation: ReadOperation,
        read_preference: ReadPreference,
    ) -> SingleResultFuture[Any]:
        if self.raise_on_submit is not None:
            raise self.raise_on_submit
        self.reads.append((operation, read_preference))
        if isinstance(operation, CountOperation):
            return self._answer(self.count)
        cursor: ListBatchCursor[Any] = ListBatchCursor(
            self._batches(operation),
            threaded=self.threaded,
        )
        self.cursors.append(cursor)
        return self._answer(cursor)

    def execute_write(
        self, operation: WriteOperation
    ) -> SingleResultFuture[WriteConcernResult]:
        if self.raise_on_submit is not None:
            raise self.raise_on_submit
        self.writes.append(operation)
        return self._answer(
            WriteConcernResult(acknowledged=True, count=len(operation.requests))
        )


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def collection(executor: RecordingExecutor) -> DefaultAsyncCollection:
    return AsyncCollection(namespace=TEST_NAMESPACE, executor=executor)


__all__ = [
    "DefaultAsyncCollection",
    "ListBatchCursor",
    "RecordingExecutor",
    "TEST_NAMESPACE",
]
