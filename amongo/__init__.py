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

# Read by setup.py: keep it a plain string literal.
__version__ = "0.1.0"


import amongo.constants  # noqa: E402
import amongo.cursors  # noqa: E402
import amongo.operations  # noqa: F401, E402
from amongo.codecs import DictCodec, DocumentCodec, RawBSONCodec  # noqa: E402
from amongo.collection import AsyncCollection, CollectionView  # noqa: E402
from amongo.future import SingleResultFuture  # noqa: E402
from amongo.operations import Namespace  # noqa: E402
from amongo.protocol import KillCursorsMessage  # noqa: E402
from amongo.results import WriteConcernResult  # noqa: E402
from amongo.utils.collection_options import CollectionOptions  # noqa: E402

__all__ = [
    "AsyncCollection",
    "CollectionOptions",
    "CollectionView",
    "DictCodec",
    "DocumentCodec",
    "KillCursorsMessage",
    "Namespace",
    "RawBSONCodec",
    "SingleResultFuture",
    "WriteConcernResult",
    "__version__",
]


__pdoc__ = {
    "settings": False,
    "utils": False,
}
