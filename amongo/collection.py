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
from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, cast

from bson.raw_bson import RawBSONDocument
from typing_extensions import Self

from amongo.codecs import (
    EMPTY_BSON_DOCUMENT,
    DictCodec,
    DocumentCodec,
    IdentityCapability,
    as_bson_document,
)
from amongo.constants import (
    DOC,
    FilterType,
    ProjectionType,
    ReadPreference,
    SortType,
    UpdateType,
    normalize_optional_projection,
)
from amongo.cursors.cursor import AsyncBatchCursor, iterate_cursor
from amongo.cursors.iterable import AsyncMongoIterable
from amongo.exceptions import UnsupportedOperationException
from amongo.future import SingleResultFuture
from amongo.operations import (
    AsyncOperationExecutor,
    CountOperation,
    DeleteOperation,
    DeleteRequest,
    FindOperation,
    InsertOperation,
    InsertRequest,
    Namespace,
    ReadOperation,
    UpdateOperation,
    UpdateRequest,
    WriteOperation,
    WriteRequestType,
)
from amongo.results import WriteConcernResult
from amongo.settings.defaults import DOCUMENT_ID_FIELD
from amongo.utils.collection_options import (
    CollectionOptions,
    FullCollectionOptions,
    defaultCollectionOptions,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewSnapshot:
    """
    The state of a `CollectionView` frozen at the time a terminal method
    is invoked. Operations are built from a snapshot only, so later changes
    to the view never affect an operation already submitted.
    """

    filter: RawBSONDocument
    sort: RawBSONDocument | None
    projection: RawBSONDocument | None
    modifiers: RawBSONDocument | None
    skip: int
    limit: int
    batch_size: int
    max_time_ms: int
    upsert: bool
    read_preference: ReadPreference


class CollectionView(AsyncMongoIterable[DOC]):
    """
    A query/update builder over a collection, as returned by the collection
    `find` method.

    The builder methods (`find`, `sort`, `skip`, `limit`, `fields`, `upsert`,
    `batch_size`, `max_time`, `modifiers`, `read_preference`) change this view
    in place and return it, to allow chaining. The terminal methods (`one`,
    `for_each`, `into`, `count`, `replace`, `update`, `update_one`, `remove`,
    `remove_one`) take a snapshot of the view and submit an operation,
    returning a `SingleResultFuture`.

    A view is meant to be owned by the code that created it: do not share
    one view among concurrent tasks still mutating it.

    Argument and encoding errors are raised right away by the method receiving
    the argument. Errors occurring while running an operation are only ever
    delivered through the returned future.

    Example:
        >>> view = collection.find({"status": "active"}).sort({"seq": 1}).limit(2)
        >>> await view.into([])
        [{'_id': 1, 'status': 'active', 'seq': 10}, {'_id': 4, 'status': 'active', 'seq': 11}]
        >>> await collection.find({"_id": 4}).update_one({"$inc": {"seq": 1}})
        WriteConcernResult(count=1, is_update_of_existing=True)
    """

    def __init__(self, collection: AsyncCollection[DOC]) -> None:
        self._collection = collection
        self._filter: RawBSONDocument = EMPTY_BSON_DOCUMENT
        self._sort: RawBSONDocument | None = None
        self._projection: RawBSONDocument | None = None
        self._modifiers: RawBSONDocument | None = None
        self._skip = 0
        self._limit = 0
        self._batch_size = collection.options.default_batch_size
        self._max_time_ms = 0
        self._upsert = False
        self._read_preference = collection.options.read_preference

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}("{self._collection.full_name}", '
            f"filter={dict(self._filter)})"
        )

    def _as_bson(self, document: Any) -> RawBSONDocument | None:
        return as_bson_document(document, self._collection.codec)

    def find(self, filter: FilterType | DOC) -> Self:
        """
        Set the filter selecting the documents this view operates on.

        Args:
            filter: a filter document, e.g. `{"status": "active"}`.
                An empty document selects all documents.
        """

        if filter is None:
            raise ValueError("filter cannot be None.")
        self._filter = cast(RawBSONDocument, self._as_bson(filter))
        return self

    def sort(self, sort: SortType | DOC | None) -> Self:
        """
        Set the order of the documents, e.g. `{"seq": SortMode.DESCENDING}`.
        Passing None removes any sort.
        """

        self._sort = self._as_bson(sort)
        return self

    def skip(self, skip: int) -> Self:
        if skip < 0:
            raise ValueError("skip cannot be negative.")
        self._skip = skip
        return self

    def limit(self, limit: int) -> Self:
        """
        Set the maximum number of documents to return. Zero means no limit.
        """

        self._limit = limit
        return self

    def fields(self, projection: ProjectionType | DOC | None) -> Self:
        """
        Set the projection, either as a document (such as `{"name": 1, "_id": 0}`)
        or as an iterable of field names to include.
        """

        self._projection = self._as_bson(normalize_optional_projection(projection))
        return self

    def upsert(self) -> Self:
        """
        Make the following `replace`, `update` or `update_one` insert a new
        document if none matches the filter.
        """

        self._upsert = True
        return self

    def batch_size(self, batch_size: int) -> Self:
        if batch_size < 0:
            raise ValueError("batch_size cannot be negative.")
        self._batch_size = batch_size
        return self

    def max_time(self, max_time_ms: int) -> Self:
        """
        Set a limit, in milliseconds, on the server-side processing time of
        queries and counts. This is only forwarded to the server, not enforced
        locally. Zero means no limit.
        """

        if max_time_ms < 0:
            raise ValueError("max_time_ms cannot be negative.")
        self._max_time_ms = max_time_ms
        return self

    def modifiers(self, modifiers: Mapping[str, Any] | DOC | None) -> Self:
        """Set the query modifiers, e.g. `{"$comment": "nightly report"}`."""
        self._modifiers = self._as_bson(modifiers)
        return self

    def read_preference(self, read_preference: ReadPreference | str) -> Self:
        self._read_preference = ReadPreference.coerce(read_preference)
        return self

    def snapshot(self) -> ViewSnapshot:
        """Return the current state of this view, as an immutable object."""
        return ViewSnapshot(
            filter=self._filter,
            sort=self._sort,
            projection=self._projection,
            modifiers=self._modifiers,
            skip=self._skip,
            limit=self._limit,
            batch_size=self._batch_size,
            max_time_ms=self._max_time_ms,
            upsert=self._upsert,
            read_preference=self._read_preference,
        )

    def _find_operation(
        self, snapshot: ViewSnapshot, *, single_result: bool = False
    ) -> FindOperation[DOC]:
        return FindOperation(
            namespace=self._collection.namespace,
            codec=self._collection.codec,
            filter=snapshot.filter,
            sort=snapshot.sort,
            projection=snapshot.projection,
            modifiers=snapshot.modifiers,
            skip=snapshot.skip,
            limit=snapshot.limit,
            batch_size=snapshot.batch_size,
            max_time_ms=snapshot.max_time_ms,
            single_result=single_result,
        )

    def _open_cursor(
        self, snapshot: ViewSnapshot, *, single_result: bool = False
    ) -> SingleResultFuture[AsyncBatchCursor[DOC]]:
        return cast(
            SingleResultFuture[AsyncBatchCursor[DOC]],
            self._collection._execute_read(
                self._find_operation(snapshot, single_result=single_result),
                snapshot.read_preference,
            ),
        )

    def one(self) -> SingleResultFuture[DOC]:
        """
        Get the first document matching this view.

        Returns:
            a future of the first document, or of None if nothing matches.
        """

        found: list[DOC] = []

        def _take_first(document: DOC) -> bool:
            found.append(document)
            return False

        def _first_of(cursor: AsyncBatchCursor[DOC] | None) -> SingleResultFuture[DOC]:
            return iterate_cursor(
                cast(AsyncBatchCursor[DOC], cursor),
                _take_first,
                stop_on_false=True,
            ).then_apply(lambda _: found[0] if found else None)

        return self._open_cursor(self.snapshot(), single_result=True).then_compose(
            _first_of
        )

    def for_each(self, block: Callable[[DOC], Any]) -> SingleResultFuture[None]:
        """
        Run the query and invoke `block` on each resulting document, in the
        order the server returns them. The block is invoked exactly once per
        document: its return value is ignored.

        Returns:
            a future completed with no value after the last document, or with
                the error that interrupted the iteration (raised by the
                query, while fetching a batch or by the block itself).
        """

        def _iterate(cursor: AsyncBatchCursor[DOC] | None) -> SingleResultFuture[None]:
            return iterate_cursor(cast(AsyncBatchCursor[DOC], cursor), block)

        return self._open_cursor(self.snapshot()).then_compose(_iterate)

    def count(self) -> SingleResultFuture[int]:
        """
        Count the documents matching this view. Skip, limit and max time
        are taken into account.

        Returns:
            a future of the number of documents.
        """

        snapshot = self.snapshot()
        operation = CountOperation(
            namespace=self._collection.namespace,
            filter=snapshot.filter,
            skip=snapshot.skip,
            limit=snapshot.limit,
            max_time_ms=snapshot.max_time_ms,
        )
        return cast(
            SingleResultFuture[int],
            self._collection._execute_read(operation, snapshot.read_preference),
        )

    def replace(self, replacement: Mapping[str, Any] | DOC) -> SingleResultFuture[WriteConcernResult]:
        """
        Replace the first document matching this view with the provided one.
        If `upsert()` was called on this view and nothing matches,
        the document is inserted.

        Args:
            replacement: the new document. It cannot be empty.
        """

        if replacement is None:
            raise ValueError("replacement cannot be None.")
        encoded = cast(RawBSONDocument, self._as_bson(replacement))
        if len(encoded) == 0:
            raise ValueError("replacement cannot be an empty document.")
        snapshot = self.snapshot()
        request = UpdateRequest(
            filter=snapshot.filter,
            update=encoded,
            update_type=WriteRequestType.REPLACE,
            upsert=snapshot.upsert,
            multi=False,
        )
        return self._submit_update(request)

    def update(self, update: UpdateType | DOC) -> SingleResultFuture[WriteConcernResult]:
        """
        Apply update operators (such as `{"$set": {"a": 1}}`) to all
        documents matching this view.
        """

        return self._update(update, multi=True)

    def update_one(self, update: UpdateType | DOC) -> SingleResultFuture[WriteConcernResult]:
        """
        Apply update operators to the first document matching this view.
        """

        return self._update(update, multi=False)

    def _update(
        self, update: UpdateType | DOC, *, multi: bool
    ) -> SingleResultFuture[WriteConcernResult]:
        if update is None:
            raise ValueError("update cannot be None.")
        encoded = cast(RawBSONDocument, self._as_bson(update))
        snapshot = self.snapshot()
        request = UpdateRequest(
            filter=snapshot.filter,
            update=encoded,
            update_type=WriteRequestType.UPDATE,
            upsert=snapshot.upsert,
            multi=multi,
        )
        return self._submit_update(request)

    def _submit_update(self, request: UpdateRequest) -> SingleResultFuture[WriteConcernResult]:
        options = self._collection.options
        return self._collection._execute_write(
            UpdateOperation(
                namespace=self._collection.namespace,
                ordered=True,
                write_concern=options.write_concern,
                requests=(request,),
            )
        )

    def remove(self) -> SingleResultFuture[WriteConcernResult]:
        """Delete all documents matching this view."""
        return self._remove(multi=True)

    def remove_one(self) -> SingleResultFuture[WriteConcernResult]:
        """Delete the first document matching this view."""
        return self._remove(multi=False)

    def _remove(self, *, multi: bool) -> SingleResultFuture[WriteConcernResult]:
        snapshot = self.snapshot()
        options = self._collection.options
        return self._collection._execute_write(
            DeleteOperation(
                namespace=self._collection.namespace,
                ordered=True,
                write_concern=options.write_concern,
                requests=(DeleteRequest(filter=snapshot.filter, multi=multi),),
            )
        )


class AsyncCollection(Generic[DOC]):
    """
    A collection of documents, bound to the executor that runs its operations.

    Reads start with `find`, which returns a `CollectionView` to refine and
    consume; writes are `insert` and `save` here, plus the update and remove
    methods of the views. All operations return a `SingleResultFuture`, which
    can be awaited from a coroutine or waited upon with `result()`.

    Args:
        namespace: the database and collection names.
        executor: the component running the operations
            (see `amongo.operations.AsyncOperationExecutor`).
        codec: the codec for the documents of this collection. Defaults to a
            `DictCodec` generating ids of the configured `default_id_type`.
        options: a (partial) `CollectionOptions` overriding the defaults.

    Example:
        >>> collection = AsyncCollection(
        ...     namespace=Namespace("app", "users"),
        ...     executor=executor,
        ... )
        >>> await collection.insert({"name": "Alice"})
        WriteConcernResult(count=0)
        >>> await collection.find({"name": "Alice"}).one()
        {'_id': ObjectId('...'), 'name': 'Alice'}
    """

    def __init__(
        self,
        *,
        namespace: Namespace,
        executor: AsyncOperationExecutor,
        codec: DocumentCodec[DOC] | None = None,
        options: CollectionOptions | None = None,
    ) -> None:
        self._namespace = namespace
        self._executor = executor
        self._options = defaultCollectionOptions().with_override(
            options or CollectionOptions()
        )
        self._codec: DocumentCodec[DOC] = (
            codec
            if codec is not None
            else cast(DocumentCodec[DOC], DictCodec(id_type=self._options.default_id_type))
        )
        # None if the codec cannot read or assign document ids
        self._identity: IdentityCapability[DOC] | None = self._codec.identity_capability()

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(name="{self.name}", database="{self._namespace.database_name}")'

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncCollection):
            return all(
                [
                    self._namespace == other._namespace,
                    self._executor is other._executor,
                    self._codec == other._codec,
                    self._options == other._options,
                ]
            )
        else:
            return False

    def __hash__(self) -> int:
        return hash((self._namespace, id(self._executor)))

    @property
    def name(self) -> str:
        return self._namespace.collection_name

    @property
    def namespace(self) -> Namespace:
        return self._namespace

    @property
    def full_name(self) -> str:
        return self._namespace.full_name

    @property
    def codec(self) -> DocumentCodec[DOC]:
        return self._codec

    @property
    def options(self) -> FullCollectionOptions:
        return self._options

    def with_options(
        self,
        *,
        codec: DocumentCodec[DOC] | None = None,
        options: CollectionOptions | None = None,
    ) -> AsyncCollection[DOC]:
        """
        Create a clone of this collection with some changed attributes.

        Args:
            codec: a new codec for the returned collection.
            options: a (partial) `CollectionOptions`, whose set values
                override those of this collection.

        Returns:
            a new AsyncCollection, on the same namespace and executor.
        """

        new_options = self._options.with_override(options or CollectionOptions())
        return AsyncCollection(
            namespace=self._namespace,
            executor=self._executor,
            codec=codec if codec is not None else self._codec,
            options=new_options,
        )

    def _execute_read(
        self,
        operation: ReadOperation,
        read_preference: ReadPreference,
    ) -> SingleResultFuture[Any]:
        logger.info(
            f"submitting {operation.__class__.__name__} on '{self.full_name}' "
            f"({read_preference.value})"
        )
        try:
            return self._executor.execute_read(operation, read_preference)
        except Exception as exc:
            logger.info(f"submission of {operation.__class__.__name__} failed: {exc!r}")
            return SingleResultFuture.failed(exc)

    def _execute_write(
        self, operation: WriteOperation
    ) -> SingleResultFuture[WriteConcernResult]:
        logger.info(
            f"submitting {operation.__class__.__name__} of "
            f"{len(operation.requests)} request(s) on '{self.full_name}'"
        )
        try:
            return self._executor.execute_write(operation)
        except Exception as exc:
            logger.info(f"submission of {operation.__class__.__name__} failed: {exc!r}")
            return SingleResultFuture.failed(exc)

    def find(self, filter: FilterType | DOC) -> CollectionView[DOC]:
        """
        Start a new view over the documents matching the filter.

        Each call returns a new, independent view.

        Args:
            filter: a filter document, e.g. `{"status": "active"}`.
                Use `{}` to select the whole collection.

        Returns:
            a CollectionView, to be refined and consumed.
        """

        return CollectionView(self).find(filter)

    def _is_single_document(self, documents: Any) -> bool:
        return isinstance(documents, (Mapping, self._codec.document_class))

    def _with_generated_id(self, document: Any) -> Any:
        identity = self._identity
        if identity is None:
            return document
        if isinstance(document, self._codec.document_class):
            return identity.generate_id_if_absent(document)
        if not issubclass(self._codec.document_class, Mapping) or not isinstance(
            document, Mapping
        ):
            return document
        if isinstance(document, MutableMapping):
            return identity.generate_id_if_absent(document)
        if identity.document_has_id(document):
            return document
        # read-only mapping: the id goes on a copy
        return identity.generate_id_if_absent(dict(document))

    def insert(
        self, documents: Mapping[str, Any] | DOC | Sequence[Mapping[str, Any] | DOC]
    ) -> SingleResultFuture[WriteConcernResult]:
        """
        Insert one document, or a list of documents as a single batch.

        If the codec supports identities, documents without an `_id` get one
        generated. Mutable documents are modified in place, while read-only
        mappings are copied before the `_id` is added.

        Args:
            documents: a document, or an iterable of documents.

        Returns:
            a future of the WriteConcernResult of the batch.
        """

        if documents is None:
            raise ValueError("documents cannot be None.")
        _documents: list[Any]
        if self._is_single_document(documents):
            _documents = [documents]
        elif isinstance(documents, Iterable) and not isinstance(documents, (str, bytes)):
            _documents = list(documents)
        else:
            raise ValueError(f"Cannot insert an object of type {type(documents).__name__}.")
        if not _documents:
            raise ValueError("documents cannot be empty.")

        requests: list[InsertRequest] = []
        for document in _documents:
            if document is None:
                raise ValueError("documents cannot contain None.")
            document = self._with_generated_id(document)
            requests.append(
                InsertRequest(document=cast(RawBSONDocument, as_bson_document(document, self._codec)))
            )
        return self._execute_write(
            InsertOperation(
                namespace=self._namespace,
                ordered=self._options.ordered_inserts,
                write_concern=self._options.write_concern,
                requests=tuple(requests),
            )
        )

    def save(self, document: DOC) -> SingleResultFuture[WriteConcernResult]:
        """
        Insert the document if it has no `_id`, otherwise replace the document
        having that `_id` (inserting it if there is none).

        Requires a codec with identity support.

        Raises:
            UnsupportedOperationException: if the codec has no identity support.
        """

        if document is None:
            raise ValueError("document cannot be None.")
        if self._identity is None:
            raise UnsupportedOperationException(
                f"save requires a codec with identity support, "
                f"{self._codec!r} has none."
            )
        if not self._identity.document_has_id(document):
            return self.insert(document)
        document_id = self._identity.get_document_id(document)
        return self.find({DOCUMENT_ID_FIELD: document_id}).upsert().replace(document)
