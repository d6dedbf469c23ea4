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
from collections import OrderedDict

import pytest
from bson.objectid import ObjectId
from bson.raw_bson import RawBSONDocument

from amongo.codecs import DictCodec, RawBSONCodec, as_bson_document
from amongo.constants import DefaultIdType, ReadPreference, WriteConcern
from amongo.exceptions import DocumentEncodingException, MongoDriverException
from amongo.results import WriteConcernResult
from amongo.utils.collection_options import (
    CollectionOptions,
    FullCollectionOptions,
    defaultCollectionOptions,
)
from amongo.utils.unset import _UNSET


class TestCodecs:
    @pytest.mark.describe("test of id generation by the dict codec")
    @pytest.mark.parametrize(
        ("id_type", "id_class", "version"),
        [
            (DefaultIdType.OBJECTID, ObjectId, None),
            (DefaultIdType.UUID, uuid.UUID, 4),
            (DefaultIdType.UUIDV6, uuid.UUID, 6),
            (DefaultIdType.UUIDV7, uuid.UUID, 7),
        ],
    )
    def test_dict_codec_ids(self, id_type: str, id_class: type, version: int | None) -> None:
        codec = DictCodec(id_type=id_type)
        identity = codec.identity_capability()
        document: dict = {}
        assert not identity.document_has_id(document)
        identity.generate_id_if_absent(document)
        assert identity.document_has_id(document)
        generated = identity.get_document_id(document)
        assert isinstance(generated, id_class)
        if version is not None:
            assert generated.version == version
        identity.generate_id_if_absent(document)
        assert identity.get_document_id(document) == generated
        assert codec.decode(codec.encode(document)) == document

    @pytest.mark.describe("test of invalid id type")
    def test_dict_codec_invalid_id_type(self) -> None:
        with pytest.raises(ValueError):
            DictCodec(id_type="serial")

    @pytest.mark.describe("test of the raw codec lacking identity support")
    def test_raw_codec(self) -> None:
        codec = RawBSONCodec()
        assert codec.identity_capability() is None
        raw = codec.decode(DictCodec().encode({"a": 1}))
        assert isinstance(raw, RawBSONDocument)
        assert raw["a"] == 1

    @pytest.mark.describe("test of encoder selection by runtime type")
    def test_as_bson_document(self) -> None:
        codec = DictCodec()
        assert as_bson_document(None, codec) is None
        raw = RawBSONDocument(codec.encode({"a": 1}))
        assert as_bson_document(raw, codec) is raw
        assert as_bson_document({"a": 1}, codec) == raw
        assert as_bson_document(OrderedDict(a=1), RawBSONCodec()) == raw
        with pytest.raises(DocumentEncodingException) as exc_info:
            as_bson_document([("a", 1)], codec)
        assert exc_info.value.document_class is list
        assert isinstance(exc_info.value, MongoDriverException)
        assert isinstance(exc_info.value, TypeError)


class TestCollectionOptions:
    @pytest.mark.describe("test of collection options defaults and overrides")
    def test_options_override(self) -> None:
        defaults = defaultCollectionOptions()
        assert defaults.read_preference == ReadPreference.PRIMARY
        assert defaults.write_concern.acknowledged
        assert defaults.default_id_type == DefaultIdType.OBJECTID
        assert defaults.ordered_inserts
        assert defaults.default_batch_size == 0

        overridden = defaults.with_override(
            CollectionOptions(read_preference="nearest", default_batch_size=50)
        )
        assert overridden.read_preference == ReadPreference.NEAREST
        assert overridden.default_batch_size == 50
        assert overridden.write_concern == defaults.write_concern
        assert defaults.with_override(CollectionOptions()) == defaults
        assert CollectionOptions().ordered_inserts is _UNSET

    @pytest.mark.describe("test of invalid collection options")
    def test_options_errors(self) -> None:
        defaults = defaultCollectionOptions()
        with pytest.raises(ValueError):
            defaults.with_override(CollectionOptions(default_id_type="serial"))
        with pytest.raises(ValueError):
            defaults.with_override(CollectionOptions(default_batch_size=-1))
        with pytest.raises(ValueError):
            FullCollectionOptions(
                read_preference="everywhere",
                write_concern=WriteConcern(),
                default_id_type=DefaultIdType.UUID,
                ordered_inserts=True,
                default_batch_size=0,
            )

    @pytest.mark.describe("test of write concern documents")
    def test_write_concern(self) -> None:
        assert WriteConcern().as_document() == {"w": 1}
        assert WriteConcern(w=2, wtimeout_ms=100, journal=True).as_document() == {
            "w": 2,
            "wtimeout": 100,
            "j": True,
        }
        assert not WriteConcern(w=0).acknowledged
        assert WriteConcern(w=0, journal=True).acknowledged


class TestResults:
    @pytest.mark.describe("test of write concern result representation")
    def test_write_concern_result_repr(self) -> None:
        assert repr(WriteConcernResult.unacknowledged()) == (
            "WriteConcernResult(acknowledged=False)"
        )
        result = WriteConcernResult(
            acknowledged=True, count=1, is_update_of_existing=False, upserted_id=5
        )
        assert repr(result) == "WriteConcernResult(count=1, upserted_id=5)"
