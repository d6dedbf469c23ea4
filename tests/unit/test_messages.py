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

import struct
import threading

import pytest

from amongo.cursors import ServerCursor
from amongo.protocol import (
    KillCursorsMessage,
    OpCode,
    encode_kill_cursors_body,
    next_request_id,
)
from amongo.protocol.messages import _RequestIdCounter
from amongo.settings.defaults import INT32_MAX, INT64_MAX, INT64_MIN


class TestKillCursorsBody:
    @pytest.mark.describe("test of the kill-cursors body layout")
    def test_kill_cursors_body(self) -> None:
        body = encode_kill_cursors_body([101, 202])
        assert body == bytes.fromhex(
            "00000000" "02000000" "6500000000000000" "ca00000000000000"
        )
        assert len(body) == 8 + 8 * 2

    @pytest.mark.describe("test of the kill-cursors body with extreme ids")
    def test_kill_cursors_body_extremes(self) -> None:
        body = encode_kill_cursors_body([INT64_MIN, -1, INT64_MAX])
        reserved, count, *ids = struct.unpack("<iiqqq", body)
        assert (reserved, count) == (0, 3)
        assert ids == [INT64_MIN, -1, INT64_MAX]

    @pytest.mark.describe("test of invalid kill-cursors ids")
    def test_kill_cursors_body_errors(self) -> None:
        with pytest.raises(ValueError):
            encode_kill_cursors_body([])
        with pytest.raises(ValueError):
            encode_kill_cursors_body([INT64_MAX + 1])
        with pytest.raises(ValueError):
            encode_kill_cursors_body([INT64_MIN - 1])
        with pytest.raises(ValueError):
            encode_kill_cursors_body(["12"])  # type: ignore[list-item]


class TestKillCursorsMessage:
    @pytest.mark.describe("test of the full kill-cursors message")
    def test_kill_cursors_message(self) -> None:
        message = KillCursorsMessage([101, 202])
        assert not message.expects_response
        assert message.op_code == OpCode.OP_KILL_CURSORS
        encoded = message.encode()
        length, request_id, response_to, op_code = struct.unpack("<iiii", encoded[:16])
        assert length == len(encoded) == 16 + 24
        assert request_id == message.request_id
        assert response_to == 0
        assert op_code == 2007
        assert encoded[16:] == encode_kill_cursors_body([101, 202])

    @pytest.mark.describe("test of the kill-cursors message from server cursors")
    def test_kill_cursors_from_server_cursors(self) -> None:
        message = KillCursorsMessage.from_server_cursors(
            [ServerCursor(7, "host:27017"), ServerCursor(8, "host:27017")]
        )
        assert message.cursor_ids == [7, 8]
        with pytest.raises(ValueError):
            KillCursorsMessage.from_server_cursors([])

    @pytest.mark.describe("test of distinct request ids across threads")
    def test_request_ids_unique(self) -> None:
        ids: list[int] = []
        lock = threading.Lock()

        def _draw() -> None:
            drawn = [next_request_id() for _ in range(200)]
            with lock:
                ids.extend(drawn)

        threads = [threading.Thread(target=_draw) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(set(ids)) == 1600
        assert KillCursorsMessage([1]).request_id > max(ids)

    @pytest.mark.describe("test of request ids wrapping within the int32 range")
    def test_request_ids_wrap(self) -> None:
        counter = _RequestIdCounter(start=INT32_MAX - 1)
        drawn = [counter.next_id() for _ in range(3)]
        assert drawn == [INT32_MAX - 1, INT32_MAX, 1]
        for request_id in drawn:
            struct.pack("<i", request_id)
