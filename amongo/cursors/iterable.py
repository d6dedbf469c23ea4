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

from abc import ABC, abstractmethod
from collections.abc import MutableSet
from typing import Any, Callable, Generic, TypeVar

from amongo.future import SingleResultFuture

T = TypeVar("T")
TNEW = TypeVar("TNEW")
C = TypeVar("C")


def _adder_for(target: Any) -> Callable[[Any], Any]:
    if isinstance(target, MutableSet):
        return target.add
    if hasattr(target, "append"):
        return target.append  # type: ignore[no-any-return]
    raise ValueError(
        f"Cannot collect documents into an object of type {type(target).__name__}."
    )


class AsyncMongoIterable(ABC, Generic[T]):
    """
    Something that, when consumed, produces a sequence of items through
    a cursor. Nothing is fetched until one of the terminal methods
    (`one`, `for_each`, `into`) is invoked; each of them returns a
    `SingleResultFuture`.
    """

    @abstractmethod
    def one(self) -> SingleResultFuture[T]:
        """
        Get the first item, if any.

        Returns:
            a future of the first item, or of None if there are no items.
                Finding nothing is not an error.
        """
        ...

    @abstractmethod
    def for_each(self, block: Callable[[T], Any]) -> SingleResultFuture[None]:
        """
        Invoke `block` exactly once on each item, in order. The value returned
        by the block is ignored.

        Returns:
            a future completed with no value when all items have been processed,
                or with the first error met. Items processed before an error
                are not rolled back.
        """
        ...

    def into(self, target: C) -> SingleResultFuture[C]:
        """
        Add all items, in order, to the provided container (a list, or
        anything with an `append` method; or a mutable set).

        Returns:
            a future of the container itself. If an error occurs midway,
                the future carries the error and the container keeps the items
                added so far: it is not cleared.
        """

        adder = _adder_for(target)

        def _add(item: T) -> None:
            adder(item)

        return self.for_each(_add).then_apply(lambda _: target)

    def map(self, mapper: Callable[[T], TNEW]) -> AsyncMongoIterable[TNEW]:
        """
        Return a lazy view of this iterable with `mapper` applied to each item.
        The function is only called as the items are consumed by a terminal method.
        """

        return MappingIterable(self, mapper)


class MappingIterable(AsyncMongoIterable[TNEW], Generic[T, TNEW]):
    """An AsyncMongoIterable whose items come from another one, transformed."""

    def __init__(
        self,
        iterable: AsyncMongoIterable[T],
        mapper: Callable[[T], TNEW],
    ) -> None:
        self._iterable = iterable
        self._mapper = mapper

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._iterable!r})"

    def one(self) -> SingleResultFuture[TNEW]:
        def _map_found(item: T | None) -> TNEW | None:
            return None if item is None else self._mapper(item)

        return self._iterable.one().then_apply(_map_found)

    def for_each(self, block: Callable[[TNEW], Any]) -> SingleResultFuture[None]:
        def _mapped_block(item: T) -> Any:
            return block(self._mapper(item))

        return self._iterable.for_each(_mapped_block)

    def map(self, mapper: Callable[[TNEW], Any]) -> AsyncMongoIterable[Any]:
        # compose the functions rather than nesting one more level
        def _composite(item: T) -> Any:
            return mapper(self._mapper(item))

        return MappingIterable(self._iterable, _composite)
