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

from amongo.constants import DefaultIdType, ReadPreference, WriteConcern
from amongo.settings.defaults import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_ID_TYPE,
    DEFAULT_ORDERED_INSERTS,
    DEFAULT_READ_PREFERENCE,
)
from amongo.utils.unset import _UNSET, UnsetType


@dataclass
class CollectionOptions:
    """
    The settings that govern how a collection builds and submits operations.

    This class is used to override default settings when creating (or copying
    with `with_options`) a collection. Values that are left unspecified keep
    the values inherited from the defaults, or from the collection being copied.

    Attributes:
        read_preference: the server-selection mode for reads (a `ReadPreference`
            or its string value). It is forwarded to the executor. Defaults
            to "primary".
        write_concern: the `WriteConcern` attached to every write operation.
            Defaults to an acknowledged write concern (w=1).
        default_id_type: the kind of `_id` generated on insertion for documents
            that lack one, if the codec has identity support. One of the
            values of `amongo.constants.DefaultIdType`. Defaults to ObjectId.
        ordered_inserts: whether batches of inserts are applied in order,
            stopping at the first failure. Defaults to True.
        default_batch_size: the number of documents per batch requested for
            queries, unless overridden on the view. Zero lets the server decide.
    """

    read_preference: ReadPreference | str | UnsetType = _UNSET
    write_concern: WriteConcern | UnsetType = _UNSET
    default_id_type: str | UnsetType = _UNSET
    ordered_inserts: bool | UnsetType = _UNSET
    default_batch_size: int | UnsetType = _UNSET


@dataclass
class FullCollectionOptions(CollectionOptions):
    """
    The "full" version of `CollectionOptions`, with the guarantee that all
    of its members are actually set. Collections always hold one such object.
    """

    read_preference: ReadPreference
    write_concern: WriteConcern
    default_id_type: str
    ordered_inserts: bool
    default_batch_size: int

    def __init__(
        self,
        *,
        read_preference: ReadPreference | str,
        write_concern: WriteConcern,
        default_id_type: str,
        ordered_inserts: bool,
        default_batch_size: int,
    ) -> None:
        if default_id_type not in DefaultIdType.values:
            raise ValueError(
                f"Invalid default_id_type '{default_id_type}'. "
                f"Allowed values are: {sorted(DefaultIdType.values)}"
            )
        if default_batch_size < 0:
            raise ValueError("default_batch_size cannot be negative.")
        self.read_preference = ReadPreference.coerce(read_preference)
        self.write_concern = write_concern
        self.default_id_type = default_id_type
        self.ordered_inserts = ordered_inserts
        self.default_batch_size = default_batch_size

    def with_override(self, other: CollectionOptions) -> FullCollectionOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence.
        """

        return FullCollectionOptions(
            read_preference=(
                other.read_preference
                if not isinstance(other.read_preference, UnsetType)
                else self.read_preference
            ),
            write_concern=(
                other.write_concern
                if not isinstance(other.write_concern, UnsetType)
                else self.write_concern
            ),
            default_id_type=(
                other.default_id_type
                if not isinstance(other.default_id_type, UnsetType)
                else self.default_id_type
            ),
            ordered_inserts=(
                other.ordered_inserts
                if not isinstance(other.ordered_inserts, UnsetType)
                else self.ordered_inserts
            ),
            default_batch_size=(
                other.default_batch_size
                if not isinstance(other.default_batch_size, UnsetType)
                else self.default_batch_size
            ),
        )


def defaultCollectionOptions() -> FullCollectionOptions:
    return FullCollectionOptions(
        read_preference=DEFAULT_READ_PREFERENCE,
        write_concern=WriteConcern(),
        default_id_type=DEFAULT_ID_TYPE,
        ordered_inserts=DEFAULT_ORDERED_INSERTS,
        default_batch_size=DEFAULT_BATCH_SIZE,
    )
