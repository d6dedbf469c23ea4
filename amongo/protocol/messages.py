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
import struct
import threading
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Iterable, Sequence

from amongo.cursors.cursor import ServerCursor
from amongo.settings.defaults import (
    INT32_MAX,
    INT64_MAX,
    INT64_MIN,
    MESSAGE_HEADER_LENGTH,
    OP_KILL_CURSORS_RESERVED,
)

logger = logging.getLogger(__name__)

# All integers on the wire are little-endian.
ENDIANNESS_CHAR = "<"
HEADER_FORMAT = f"{ENDIANNESS_CHAR}iiii"


class OpCode(IntEnum):
    OP_REPLY = 1
    OP_UPDATE = 2001
    OP_INSERT = 2002
    OP_QUERY = 2004
    OP_GET_MORE = 2005
    OP_DELETE = 2006
    OP_KILL_CURSORS = 2007


class _RequestIdCounter:
    """
    A process-wide source of increasing request ids, safe across threads.
    Ids are positive int32 values, wrapping back to 1 after INT32_MAX.
    """

    def __init__(self, start: int = 1) -> None:
        self._lock = threading.Lock()
        self._next = start

    def next_id(self) -> int:
        with self._lock:
            request_id = self._next
            self._next = request_id + 1 if request_id < INT32_MAX else 1
            return request_id


_request_ids = _RequestIdCounter()


def next_request_id() -> int:
    return _request_ids.next_id()


class RequestMessage(ABC):
    """
    A message sent to the server, made of the standard 16-byte header
    (`messageLength`, `requestID`, `responseTo`, `opCode`) followed by a body
    specific to the operation.

    The request id is drawn when the message is created.
    """

    expects_response: bool = True

    def __init__(self, op_code: OpCode) -> None:
        self.op_code = op_code
        self.request_id = next_request_id()

    @abstractmethod
    def _encode_body(self) -> bytes: ...

    def encode(self) -> bytes:
        """
        Return the full binary form of the message, header included.
        """

        body = self._encode_body()
        header = struct.pack(
            HEADER_FORMAT,
            MESSAGE_HEADER_LENGTH + len(body),
            self.request_id,
            0,
            int(self.op_code),
        )
        logger.debug(
            f"encoded {self.op_code.name} request {self.request_id}, "
            f"{MESSAGE_HEADER_LENGTH + len(body)} bytes"
        )
        return header + body


def encode_kill_cursors_body(cursor_ids: Sequence[int]) -> bytes:
    """
    Encode the body of a kill-cursors request.

    Args:
        cursor_ids: the ids of the server cursors to release, in order.

    Returns:
        the bytes of a reserved int32 zero, then the int32 number of ids,
        then each id as an int64. All integers are little-endian.

    Example:
        >>> encode_kill_cursors_body([101]).hex()
        '00000000010000006500000000000000'
    """

    if not cursor_ids:
        raise ValueError("At least one cursor id is required.")
    for cursor_id in cursor_ids:
        if not isinstance(cursor_id, int) or isinstance(cursor_id, bool):
            raise ValueError(f"Invalid cursor id: {cursor_id!r}.")
        if cursor_id < INT64_MIN or cursor_id > INT64_MAX:
            raise ValueError(f"Cursor id out of the int64 range: {cursor_id}.")
    _n = len(cursor_ids)
    return struct.pack(
        f"{ENDIANNESS_CHAR}ii{'q' * _n}",
        OP_KILL_CURSORS_RESERVED,
        _n,
        *cursor_ids,
    )


class KillCursorsMessage(RequestMessage):
    """
    The request asking the server to release one or more cursors.
    The server sends no reply to it.

    Args:
        cursor_ids: the ids of the cursors to release. Cannot be empty.
    """

    expects_response = False

    def __init__(self, cursor_ids: Iterable[int]) -> None:
        self.cursor_ids = list(cursor_ids)
        # validate before drawing a request id
        self._body = encode_kill_cursors_body(self.cursor_ids)
        super().__init__(OpCode.OP_KILL_CURSORS)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cursor_ids={self.cursor_ids})"

    @classmethod
    def from_server_cursors(
        cls, server_cursors: Iterable[ServerCursor]
    ) -> KillCursorsMessage:
        return cls([server_cursor.cursor_id for server_cursor in server_cursors])

    def _encode_body(self) -> bytes:
        return self._body
