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

from typing import Any

import pytest

from amongo.cursors import CursorState, iterate_cursor
from amongo.exceptions import CursorException

from ..conftest import ListBatchCursor


class TestCursorIteration:
    @pytest.mark.describe("test of iterating all batches in order")
    @pytest.mark.parametrize("threaded", [False, True])
    def test_iterate_cursor_order(self, threaded: bool) -> None:
        cursor = ListBatchCursor([[1, 2], [3], [], [4, 5, 6]], threaded=threaded)
        seen: list[int] = []
        outcome = iterate_cursor(cursor, seen.append)
        assert outcome.result(timeout=5) is None
        assert seen == [1, 2, 3, 4, 5, 6]
        assert cursor.state == CursorState.CLOSED
        assert cursor.retrieved == 6

    @pytest.mark.describe("test of iterating an empty cursor")
    def test_iterate_cursor_empty(self) -> None:
        cursor: ListBatchCursor[int] = ListBatchCursor([])
        seen: list[int] = []
        assert iterate_cursor(cursor, seen.append).result() is None
        assert seen == []

    @pytest.mark.describe("test of a batch failure interrupting the iteration")
    @pytest.mark.parametrize("threaded", [False, True])
    def test_iterate_cursor_batch_failure(self, threaded: bool) -> None:
        error = RuntimeError("network down")
        cursor = ListBatchCursor(
            [[1, 2], [3, 4], [5, 6]], fail_at=1, error=error, threaded=threaded
        )
        seen: list[int] = []
        outcome = iterate_cursor(cursor, seen.append)
        assert outcome.exception(timeout=5) is error
        assert seen == [1, 2]
        assert cursor.requests == 2

    @pytest.mark.describe("test of an exception in the block interrupting the iteration")
    def test_iterate_cursor_block_failure(self) -> None:
        cursor = ListBatchCursor([[1, 2], [3, 4]])
        seen: list[int] = []

        def _block(item: int) -> None:
            if item == 3:
                raise ValueError("bad item")
            seen.append(item)

        outcome = iterate_cursor(cursor, _block)
        assert isinstance(outcome.exception(), ValueError)
        assert seen == [1, 2]
        # no further batch requested after the failure
        assert cursor.requests == 2

    @pytest.mark.describe("test of block return values not affecting the iteration")
    @pytest.mark.parametrize("returned", [False, 0, None, "", True])
    def test_iterate_cursor_ignores_returned(self, returned: Any) -> None:
        cursor = ListBatchCursor([[1, 2], [3, 4], [5]])
        seen: list[int] = []

        def _block(item: int) -> Any:
            seen.append(item)
            return returned

        assert iterate_cursor(cursor, _block).result() is None
        assert seen == [1, 2, 3, 4, 5]
        assert cursor.state == CursorState.CLOSED

    @pytest.mark.describe("test of the opt-in early stop when the block returns False")
    def test_iterate_cursor_early_stop(self) -> None:
        cursor = ListBatchCursor([[1, 2], [3, 4], [5]])
        seen: list[int] = []

        def _block(item: int) -> bool:
            seen.append(item)
            return item < 3

        assert iterate_cursor(cursor, _block, stop_on_false=True).result() is None
        assert seen == [1, 2, 3]
        assert cursor.requests == 2
        assert cursor.state == CursorState.STARTED

    @pytest.mark.describe("test of many synchronous batches not growing the stack")
    def test_iterate_cursor_many_batches(self) -> None:
        cursor = ListBatchCursor([[i] for i in range(5000)])
        total: list[int] = [0]

        def _block(item: int) -> None:
            total[0] += item

        assert iterate_cursor(cursor, _block).result() is None
        assert total[0] == sum(range(5000))


class TestBatchCursor:
    @pytest.mark.describe("test of cursor states and closing")
    def test_cursor_states(self) -> None:
        cursor = ListBatchCursor([[1]])
        assert cursor.state == CursorState.IDLE
        assert cursor.server_cursor is not None
        assert cursor.next_batch().result() == [1]
        assert cursor.state == CursorState.STARTED
        cursor.close()
        assert cursor.state == CursorState.CLOSED
        assert cursor.closed_by_hook
        with pytest.raises(CursorException):
            cursor.next_batch()

    @pytest.mark.describe("test of iterating a closed cursor")
    def test_iterate_closed_cursor(self) -> None:
        cursor = ListBatchCursor([[1]])
        cursor.close()
        outcome = iterate_cursor(cursor, lambda _: None)
        assert isinstance(outcome.exception(), CursorException)

    @pytest.mark.describe("test of async iteration over a cursor")
    async def test_cursor_async_for(self) -> None:
        cursor = ListBatchCursor([[1, 2], [], [3]], threaded=True)
        items: list[Any] = [item async for item in cursor]
        assert items == [1, 2, 3]
        assert cursor.state == CursorState.CLOSED
