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
from enum import Enum
from typing import Any, Iterable, Mapping, TypeVar, Union

from amongo.settings.defaults import (
    DEFAULT_WRITE_CONCERN_JOURNAL,
    DEFAULT_WRITE_CONCERN_W,
    DEFAULT_WRITE_CONCERN_WTIMEOUT_MS,
)

FilterType = Mapping[str, Any]
SortType = Mapping[str, Any]
ProjectionType = Union[Iterable[str], Mapping[str, Any]]
UpdateType = Mapping[str, Any]


DOC = TypeVar("DOC")


def normalize_optional_projection(
    projection: ProjectionType | None,
) -> Mapping[str, Any] | None:
    if projection is None:
        return None
    if isinstance(projection, Mapping):
        # already a mapping (or a document of the codec class)
        return projection
    if isinstance(projection, (str, bytes)):
        raise ValueError("A projection must be a mapping or an iterable of names.")
    # an iterable over strings: coerce to allow-list projection
    return {field: 1 for field in projection}


class SortMode:
    """
    Admitted values for the directions in a sort specification,
    e.g. `view.sort({"field": SortMode.ASCENDING})`.
    """

    def __init__(self) -> None:
        raise NotImplementedError

    ASCENDING = 1
    DESCENDING = -1


class DefaultIdType:
    """
    Admitted values for the "default_id_type" collection option, i.e. the kind
    of identifier generated for documents inserted without an `_id`.
    """

    def __init__(self) -> None:
        raise NotImplementedError

    OBJECTID = "objectId"
    UUID = "uuid"
    UUIDV6 = "uuidv6"
    UUIDV7 = "uuidv7"
    DEFAULT = "objectId"

    values = {OBJECTID, UUID, UUIDV6, UUIDV7}


class ReadPreference(Enum):
    """
    The server-selection mode forwarded, untouched, to the read executor.
    """

    PRIMARY = "primary"
    PRIMARY_PREFERRED = "primaryPreferred"
    SECONDARY = "secondary"
    SECONDARY_PREFERRED = "secondaryPreferred"
    NEAREST = "nearest"

    @classmethod
    def coerce(cls, value: str | ReadPreference) -> ReadPreference:
        """
        Accept either a ReadPreference or a (case-insensitive) string matching
        one of the member names or values.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            u_value = value.upper()
            for member in cls:
                if u_value in {member.name, member.value.upper()}:
                    return member
        raise ValueError(
            f"Invalid value '{value}' for {cls.__name__}. "
            f"Allowed values are: {[rp.value for rp in cls]}"
        )


@dataclass(frozen=True)
class WriteConcern:
    """
    The acknowledgement level requested for write operations. It is attached,
    unchanged, to every write operation descriptor.

    Attributes:
        w: the number of nodes that must acknowledge the write. Zero means
            the write is not acknowledged at all.
        wtimeout_ms: how long the server may wait for acknowledgement,
            zero meaning no limit.
        journal: whether the write must reach the on-disk journal.
    """

    w: int = DEFAULT_WRITE_CONCERN_W
    wtimeout_ms: int = DEFAULT_WRITE_CONCERN_WTIMEOUT_MS
    journal: bool = DEFAULT_WRITE_CONCERN_JOURNAL

    @property
    def acknowledged(self) -> bool:
        return self.w > 0 or self.journal

    def as_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {"w": self.w}
        if self.wtimeout_ms:
            document["wtimeout"] = self.wtimeout_ms
        if self.journal:
            document["j"] = True
        return document


WriteConcern.ACKNOWLEDGED = WriteConcern()  # type: ignore[attr-defined]
WriteConcern.UNACKNOWLEDGED = WriteConcern(w=0)  # type: ignore[attr-defined]


__all__ = [
    "DefaultIdType",
    "ReadPreference",
    "SortMode",
    "WriteConcern",
]

__pdoc__ = {
    "normalize_optional_projection": False,
}
