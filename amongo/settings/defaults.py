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

# Defaults/settings for collections
DEFAULT_READ_PREFERENCE = "primary"  # later coerced as ReadPreference
DEFAULT_ID_TYPE = "objectId"
DEFAULT_ORDERED_INSERTS = True
# a batch size of zero lets the server pick the size of each batch
DEFAULT_BATCH_SIZE = 0

# Write concern settings
DEFAULT_WRITE_CONCERN_W = 1
DEFAULT_WRITE_CONCERN_WTIMEOUT_MS = 0
DEFAULT_WRITE_CONCERN_JOURNAL = False

# Name of the identity field in documents
DOCUMENT_ID_FIELD = "_id"

# Wire protocol settings
MESSAGE_HEADER_LENGTH = 16
OP_KILL_CURSORS_RESERVED = 0
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
