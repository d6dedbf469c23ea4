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

import asyncio
import logging
import threading
from concurrent.futures import InvalidStateError
from typing import Any, Callable, Generator, Generic, TypeVar

V = TypeVar("V")
VNEW = TypeVar("VNEW")

SingleResultCallback = Callable[[Any, "BaseException | None"], None]

logger = logging.getLogger(__name__)


class SingleResultFuture(Generic[V]):
    """
    A single-assignment container for the outcome of an asynchronous operation.

    The outcome is either a value or an error, never both. Only the first
    call to `complete` has any effect: all later calls are silently ignored,
    so that several producers may race to complete the same future.

    Callbacks are registered with `register` and receive `(value, error)`.
    Each callback is invoked exactly once: callbacks registered before
    completion run, in registration order, on the thread performing the
    completion; callbacks registered afterwards run immediately on the
    registering thread. A registration racing with the completion is never
    lost nor run twice.

    Futures can also be awaited from a coroutine, and waited upon from
    synchronous code with `result()`.

    Example:
        >>> future = SingleResultFuture[int]()
        >>> future.register(lambda value, error: print(value, error))
        >>> future.complete(42)
        42 None
        True
        >>> future.complete(43)
        False
        >>> future.then_apply(lambda value: value + 1).result()
        43
    """

    __slots__ = ("_lock", "_done_event", "_done", "_value", "_error", "_callbacks")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done_event = threading.Event()
        self._done = False
        self._value: V | None = None
        self._error: BaseException | None = None
        self._callbacks: list[SingleResultCallback] = []

    @classmethod
    def completed(cls, value: V | None = None) -> SingleResultFuture[V]:
        """Return a future already completed with the provided value."""
        future: SingleResultFuture[V] = cls()
        future.complete(value)
        return future

    @classmethod
    def failed(cls, error: BaseException) -> SingleResultFuture[V]:
        """Return a future already completed with the provided error."""
        future: SingleResultFuture[V] = cls()
        future.complete(None, error)
        return future

    def __repr__(self) -> str:
        if not self._done:
            return f"{self.__class__.__name__}(pending)"
        if self._error is not None:
            return f"{self.__class__.__name__}(error={self._error!r})"
        return f"{self.__class__.__name__}(value={self._value!r})"

    def complete(
        self, value: V | None = None, error: BaseException | None = None
    ) -> bool:
        """
        Set the outcome of this future, unless it is already set.

        Args:
            value: the result value. Must be None if an error is passed.
            error: the exception signaling a failure.

        Returns:
            True if this call completed the future, False if the future
                had been completed already (in which case nothing happens).
        """

        if error is not None and value is not None:
            raise ValueError("A future cannot be completed with both a value and an error.")
        with self._lock:
            if self._done:
                return False
            self._value = value
            self._error = error
            self._done = True
            callbacks, self._callbacks = self._callbacks, []
        self._done_event.set()
        for callback in callbacks:
            self._invoke(callback)
        return True

    def register(self, callback: SingleResultCallback) -> None:
        """
        Register a callback `callback(value, error)` to receive the outcome.

        If the future is already completed, the callback runs right away,
        on the calling thread.
        """

        with self._lock:
            if not self._done:
                self._callbacks.append(callback)
                return
        self._invoke(callback)

    def _invoke(self, callback: SingleResultCallback) -> None:
        try:
            callback(self._value, self._error)
        except Exception:
            logger.exception(f"exception calling callback for {self!r}")

    def is_done(self) -> bool:
        return self._done

    def outcome(self) -> tuple[V | None, BaseException | None]:
        """
        The `(value, error)` pair of a completed future, without blocking.

        Raises:
            InvalidStateError: if the future is not completed yet.
        """

        if not self._done:
            raise InvalidStateError("The future is not completed yet.")
        return (self._value, self._error)

    def result(self, timeout: float | None = None) -> V | None:
        """
        Block until the future is completed and return its value,
        or raise its error.

        Args:
            timeout: the maximum number of seconds to wait. None means forever.

        Raises:
            TimeoutError: if the future is not completed within `timeout`.
        """

        if not self._done_event.wait(timeout):
            raise TimeoutError(f"Future not completed within {timeout} s.")
        if self._error is not None:
            raise self._error
        return self._value

    def exception(self, timeout: float | None = None) -> BaseException | None:
        """Block until the future is completed and return its error, if any."""
        if not self._done_event.wait(timeout):
            raise TimeoutError(f"Future not completed within {timeout} s.")
        return self._error

    def then_apply(self, function: Callable[[V | None], VNEW]) -> SingleResultFuture[VNEW]:
        """
        Return a new future completed with `function(value)` once this one
        succeeds. Errors of this future, or raised by `function`, are
        passed on to the returned future.
        """

        derived: SingleResultFuture[VNEW] = SingleResultFuture()

        def _apply(value: V | None, error: BaseException | None) -> None:
            if error is not None:
                derived.complete(None, error)
                return
            try:
                new_value = function(value)
            except Exception as exc:
                derived.complete(None, exc)
            else:
                derived.complete(new_value)

        self.register(_apply)
        return derived

    def then_compose(
        self, function: Callable[[V | None], SingleResultFuture[VNEW]]
    ) -> SingleResultFuture[VNEW]:
        """
        Return a new future mirroring the future that `function(value)`
        returns once this one succeeds. Errors of this future, or raised
        by `function`, are passed on to the returned future.
        """

        derived: SingleResultFuture[VNEW] = SingleResultFuture()

        def _compose(value: V | None, error: BaseException | None) -> None:
            if error is not None:
                derived.complete(None, error)
                return
            try:
                next_future = function(value)
            except Exception as exc:
                derived.complete(None, exc)
            else:
                next_future.register(derived.complete)

        self.register(_compose)
        return derived

    def when_complete(self, callback: SingleResultCallback) -> SingleResultFuture[V]:
        """
        Run `callback(value, error)` upon completion and return a new
        future with the very same outcome as this one, completed after
        the callback has run.
        """

        derived: SingleResultFuture[V] = SingleResultFuture()

        def _then(value: V | None, error: BaseException | None) -> None:
            try:
                callback(value, error)
            finally:
                derived.complete(value, error)

        self.register(_then)
        return derived

    def __await__(self) -> Generator[Any, None, V | None]:
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()

        def _settle(value: V | None, error: BaseException | None) -> None:
            if waiter.cancelled():
                return
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(value)

        def _transfer(value: V | None, error: BaseException | None) -> None:
            if loop.is_closed():
                logger.debug(f"event loop closed before delivering {self!r}")
                return
            loop.call_soon_threadsafe(_settle, value, error)

        self.register(_transfer)
        return (yield from waiter.__await__())
