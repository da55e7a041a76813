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

__version__: str = "0.1.0"


from arangopy.cursor import Cursor, CursorState, CursorStats  # noqa: E402
from arangopy.database import ArangoClient, Database  # noqa: E402
from arangopy.document import Document  # noqa: E402

__all__ = [
    "ArangoClient",
    "Cursor",
    "CursorState",
    "CursorStats",
    "Database",
    "Document",
    "__version__",
]
