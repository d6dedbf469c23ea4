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

from dataclasses import dataclass
from typing import Any


@dataclass
class WriteConcernResult:
    """
    Class that represents the outcome of a write operation, as reported
    by the server.

    Attributes:
        acknowledged: whether the server acknowledged the write. If False,
            the other attributes carry no information.
        count: number of documents affected by the operation.
        is_update_of_existing: for updates, whether an existing document was
            updated (as opposed to a new one being upserted).
        upserted_id: the `_id` of the upserted document, if any.
    """

    acknowledged: bool
    count: int = 0
    is_update_of_existing: bool = False
    upserted_id: Any = None

    def _piecewise_repr(self, pieces: list[str | None]) -> str:
        return f"{self.__class__.__name__}({', '.join(pc for pc in pieces if pc)})"

    def __repr__(self) -> str:
        if not self.acknowledged:
            return self._piecewise_repr(["acknowledged=False"])
        return self._piecewise_repr(
            [
                f"count={self.count}",
                "is_update_of_existing=True" if self.is_update_of_existing else None,
                f"upserted_id={self.upserted_id}"
                if self.upserted_id is not None
                else None,
            ]
        )

    @staticmethod
    def unacknowledged() -> WriteConcernResult:
        return WriteConcernResult(acknowledged=False)
