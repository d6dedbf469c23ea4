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


class MongoDriverException(Exception):
    """
    Any exception specific to the driver, such as:
      - a document that cannot be encoded,
      - an operation the configured codec does not support,
      - a server-side failure reported by the executor,
    but not, for instance,
      - a ValueError raised because a required argument is missing.
    """

    pass


class UnsupportedOperationException(MongoDriverException):
    """
    The requested operation needs a capability that the collection codec
    does not provide (for instance, `save` without identity support).
    This is raised synchronously, before anything is submitted.
    """

    pass


@dataclass
class DocumentEncodingException(MongoDriverException, TypeError):
    """
    A document-like argument could not be turned into a BSON document:
    either its runtime type matches no known encoder, or the BSON encoder
    rejected its contents. This is raised synchronously, before anything
    is submitted.

    Attributes:
        text: a text message about the exception.
        document_class: the runtime type of the offending argument.
    """

    text: str
    document_class: type | None

    def __init__(self, text: str, *, document_class: type | None = None) -> None:
        super().__init__(text)
        self.text = text
        self.document_class = document_class


@dataclass
class OperationFailureException(MongoDriverException):
    """
    The server, or the transport, reported a failure while running an operation.
    Instances of this class only ever reach the caller through the error channel
    of the future returned by the operation.

    Attributes:
        text: a text message about the exception.
        code: the server error code, if any.
        details: the raw error document returned by the server, if any.
    """

    text: str
    code: int | None
    details: dict[str, Any] | None

    def __init__(
        self,
        text: str,
        *,
        code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.code = code
        self.details = details

    @staticmethod
    def from_error_document(error_document: dict[str, Any]) -> OperationFailureException:
        """Parse a server error document (`{"ok": 0, "errmsg": ..., "code": ...}`)."""

        text = str(error_document.get("errmsg") or "Operation failed.")
        code = error_document.get("code")
        return OperationFailureException(
            text,
            code=code if isinstance(code, int) else None,
            details=error_document,
        )


@dataclass
class CursorException(MongoDriverException):
    """
    The cursor operation cannot be invoked because of the cursor state
    (for instance, the cursor has already been closed).

    Attributes:
        text: a text message about the exception.
        cursor_state: a string description of the current state
            of the cursor. See `amongo.cursors.CursorState`.
    """

    text: str
    cursor_state: str

    def __init__(
        self,
        text: str,
        *,
        cursor_state: str,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.cursor_state = cursor_state
