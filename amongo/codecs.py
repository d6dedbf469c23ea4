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

import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Mapping, MutableMapping, TypeVar

import bson
import uuid6
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions
from bson.errors import BSONError
from bson.objectid import ObjectId
from bson.raw_bson import RawBSONDocument

from amongo.constants import DefaultIdType
from amongo.exceptions import DocumentEncodingException
from amongo.settings.defaults import DEFAULT_ID_TYPE, DOCUMENT_ID_FIELD

T = TypeVar("T")

# native UUIDs (of any version) are stored as binary subtype 4
BSON_CODEC_OPTIONS: CodecOptions = CodecOptions(uuid_representation=UuidRepresentation.STANDARD)

EMPTY_BSON_DOCUMENT = RawBSONDocument(bson.encode({}))

ID_FACTORIES: dict[str, Callable[[], Any]] = {
    DefaultIdType.OBJECTID: ObjectId,
    DefaultIdType.UUID: uuid.uuid4,
    DefaultIdType.UUIDV6: uuid6.uuid6,
    DefaultIdType.UUIDV7: uuid6.uuid7,
}


class IdentityCapability(ABC, Generic[T]):
    """
    The optional ability of a codec to inspect and assign the `_id`
    of the documents it handles.
    """

    @abstractmethod
    def document_has_id(self, document: T) -> bool: ...

    @abstractmethod
    def generate_id_if_absent(self, document: T) -> T:
        """Assign a new identifier to the document if it has none. Returns the document."""
        ...

    @abstractmethod
    def get_document_id(self, document: T) -> Any: ...


class DocumentCodec(ABC, Generic[T]):
    """
    Converts documents of type T to and from BSON bytes.

    A codec may additionally offer identity support (see `IdentityCapability`):
    collections query `identity_capability()` once, when they are created.
    """

    @property
    @abstractmethod
    def document_class(self) -> type: ...

    @abstractmethod
    def encode(self, document: T) -> bytes: ...

    @abstractmethod
    def decode(self, data: bytes) -> T: ...

    def identity_capability(self) -> IdentityCapability[T] | None:
        return None


class DictCodec(DocumentCodec[Dict[str, Any]], IdentityCapability[Dict[str, Any]]):
    """
    The default codec: documents are plain dictionaries, encoded with `bson`.

    Missing identifiers are generated according to `id_type`, one of the
    values in `amongo.constants.DefaultIdType`.
    """

    def __init__(self, id_type: str = DEFAULT_ID_TYPE) -> None:
        if id_type not in ID_FACTORIES:
            raise ValueError(
                f"Invalid id type '{id_type}'. "
                f"Allowed values are: {sorted(ID_FACTORIES)}"
            )
        self.id_type = id_type
        self._id_factory = ID_FACTORIES[id_type]

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(id_type="{self.id_type}")'

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, DictCodec):
            return self.id_type == other.id_type
        return False

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.id_type))

    @property
    def document_class(self) -> type:
        return dict

    def encode(self, document: Dict[str, Any]) -> bytes:
        return bson.encode(document, codec_options=BSON_CODEC_OPTIONS)

    def decode(self, data: bytes) -> Dict[str, Any]:
        return bson.decode(data, codec_options=BSON_CODEC_OPTIONS)

    def identity_capability(self) -> IdentityCapability[Dict[str, Any]]:
        return self

    def document_has_id(self, document: Mapping[str, Any]) -> bool:
        return DOCUMENT_ID_FIELD in document

    def generate_id_if_absent(
        self, document: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        if DOCUMENT_ID_FIELD not in document:
            document[DOCUMENT_ID_FIELD] = self._id_factory()
        return document

    def get_document_id(self, document: Mapping[str, Any]) -> Any:
        return document.get(DOCUMENT_ID_FIELD)


class RawBSONCodec(DocumentCodec[RawBSONDocument]):
    """
    Passes raw BSON documents through without inflating them.
    Raw documents are immutable, hence this codec has no identity capability.
    """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, RawBSONCodec)

    def __hash__(self) -> int:
        return hash(self.__class__.__name__)

    @property
    def document_class(self) -> type:
        return RawBSONDocument

    def encode(self, document: RawBSONDocument) -> bytes:
        return bytes(document.raw)

    def decode(self, data: bytes) -> RawBSONDocument:
        return RawBSONDocument(data)


def as_bson_document(
    document: Any,
    codec: DocumentCodec[Any],
) -> RawBSONDocument | None:
    """
    Turn a document-like argument into a raw BSON document, choosing the
    encoder from its runtime type:
        - None stays None;
        - a RawBSONDocument is returned as is;
        - an instance of the codec document class goes through the codec;
        - any other Mapping is encoded with `bson`.

    Raises:
        DocumentEncodingException: if no encoder fits, or encoding fails.
    """

    if document is None:
        return None
    if isinstance(document, RawBSONDocument):
        return document
    try:
        if isinstance(document, codec.document_class):
            return RawBSONDocument(codec.encode(document))
        if isinstance(document, Mapping):
            return RawBSONDocument(bson.encode(document, codec_options=BSON_CODEC_OPTIONS))
    except BSONError as exc:
        raise DocumentEncodingException(
            f"Cannot encode document: {exc}",
            document_class=type(document),
        ) from exc
    raise DocumentEncodingException(
        f"No encoder for class {type(document).__name__}.",
        document_class=type(document),
    )
