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
Descriptors of the operations submitted to an executor, and the contract
such an executor must honor.

Descriptors and write requests are immutable: once built, they can be handed
to another thread (the executor's) without any further synchronization.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Tuple, TypeVar, Union

from bson.raw_bson import RawBSONDocument
from typing_extensions import Protocol

from amongo.constants import ReadPreference, WriteConcern

if TYPE_CHECKING:
    from amongo.codecs import DocumentCodec
    from amongo.cursors.cursor import AsyncBatchCursor
    from amongo.future import SingleResultFuture
    from amongo.results import WriteConcernResult

T = TypeVar("T")


@dataclass(frozen=True)
class Namespace:
    """
    The full name of a collection: database name plus collection name.
    """

    database_name: str
    collection_name: str

    def __post_init__(self) -> None:
        if not self.database_name:
            raise ValueError("The database name cannot be empty.")
        if not self.collection_name:
            raise ValueError("The collection name cannot be empty.")

    @property
    def full_name(self) -> str:
        return f"{self.database_name}.{self.collection_name}"

    def __str__(self) -> str:
        return self.full_name


class WriteRequestType(Enum):
    INSERT = "insert"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"


class WriteRequest(ABC):
    """One insert, update or delete intent, part of a batch."""

    @property
    @abstractmethod
    def request_type(self) -> WriteRequestType: ...


@dataclass(frozen=True)
class InsertRequest(WriteRequest):
    document: RawBSONDocument

    @property
    def request_type(self) -> WriteRequestType:
        return WriteRequestType.INSERT


@dataclass(frozen=True)
class UpdateRequest(WriteRequest):
    """
    An update intent. With `update_type` REPLACE the `update` document is the
    whole new document, otherwise it holds update operators such as `$set`.
    """

    filter: RawBSONDocument
    update: RawBSONDocument
    update_type: WriteRequestType = WriteRequestType.UPDATE
    upsert: bool = False
    multi: bool = False

    def __post_init__(self) -> None:
        if self.update_type not in {WriteRequestType.UPDATE, WriteRequestType.REPLACE}:
            raise ValueError(f"Invalid update type: {self.update_type}.")
        if self.update_type == WriteRequestType.REPLACE and self.multi:
            raise ValueError("A replacement cannot apply to multiple documents.")

    @property
    def request_type(self) -> WriteRequestType:
        return self.update_type


@dataclass(frozen=True)
class DeleteRequest(WriteRequest):
    filter: RawBSONDocument
    multi: bool = True

    @property
    def request_type(self) -> WriteRequestType:
        return WriteRequestType.DELETE


@dataclass(frozen=True)
class FindOperation(Generic[T]):
    """
    A query. The executor answers it with a cursor over documents decoded
    by `codec`.

    With `single_result` set, the server is asked to return at most one
    document in one batch and to close the cursor right away.
    """

    namespace: Namespace
    codec: DocumentCodec[T]
    filter: RawBSONDocument | None = None
    sort: RawBSONDocument | None = None
    projection: RawBSONDocument | None = None
    modifiers: RawBSONDocument | None = None
    skip: int = 0
    limit: int = 0
    batch_size: int = 0
    max_time_ms: int = 0
    single_result: bool = False


@dataclass(frozen=True)
class CountOperation:
    """A count of the documents matching a filter. Answered with an int."""

    namespace: Namespace
    filter: RawBSONDocument | None = None
    skip: int = 0
    limit: int = 0
    max_time_ms: int = 0


@dataclass(frozen=True)
class WriteOperation:
    """
    A batch of write requests of one kind, submitted as a whole.
    Answered with a `WriteConcernResult`.
    """

    namespace: Namespace
    ordered: bool
    write_concern: WriteConcern
    requests: Tuple[WriteRequest, ...]

    def __post_init__(self) -> None:
        if not self.requests:
            raise ValueError("A write operation requires at least one request.")


@dataclass(frozen=True)
class InsertOperation(WriteOperation):
    requests: Tuple[InsertRequest, ...]


@dataclass(frozen=True)
class UpdateOperation(WriteOperation):
    requests: Tuple[UpdateRequest, ...]


@dataclass(frozen=True)
class DeleteOperation(WriteOperation):
    requests: Tuple[DeleteRequest, ...]


ReadOperation = Union[FindOperation[Any], CountOperation]


class AsyncOperationExecutor(Protocol):
    """
    The component that actually runs operations against a server.

    Both methods return immediately: the outcome, including any network or
    server failure, is delivered through the returned future, possibly on
    another thread.
    """

    def execute_read(
        self,
        operation: ReadOperation,
        read_preference: ReadPreference,
    ) -> SingleResultFuture[AsyncBatchCursor[Any]] | SingleResultFuture[int]: ...

    def execute_write(
        self,
        operation: WriteOperation,
    ) -> SingleResultFuture[WriteConcernResult]: ...
