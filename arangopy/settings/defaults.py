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

# Defaults/settings for database access
DEFAULT_DATABASE_NAME = "_system"
DATABASE_PATH_TEMPLATE = "_db/{database_name}"

# Defaults/settings for HTTP requests
DEFAULT_REQUEST_TIMEOUT_MS = 30000
DEFAULT_AUTH_HEADER = "Authorization"
DEFAULT_AUTH_BEARER_PREFIX = "bearer "
DEFAULT_AUTH_BASIC_PREFIX = "Basic "

# Resource kinds and the API paths they map to
RESOURCE_KIND_CURSOR = "cursor"
RESOURCE_KIND_DOCUMENT = "document"
API_CURSOR_PATH = "_api/cursor"
API_DOCUMENT_PATH = "_api/document"
RESOURCE_PATH_MAP = {
    RESOURCE_KIND_CURSOR: API_CURSOR_PATH,
    RESOURCE_KIND_DOCUMENT: API_DOCUMENT_PATH,
}

# HTTP status codes carrying a meaning for the client
HTTP_STATUS_OK = 200
HTTP_STATUS_CREATED = 201
HTTP_STATUS_ACCEPTED = 202
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_PRECONDITION_FAILED = 412
HTTP_STATUS_SERVER_ERROR_MIN = 500

# Query parameter carrying the revision for conditional document reads
DOCUMENT_REVISION_PARAM = "rev"

# Settings for redacting secrets in string representations and logging
SECRETS_REDACT_ENDING = "..."
SECRETS_REDACT_CHAR = "*"
SECRETS_REDACT_ENDING_LENGTH = 3
FIXED_SECRET_PLACEHOLDER = "******"
DEFAULT_REDACTED_HEADER_NAMES = {
    DEFAULT_AUTH_HEADER,
}

# Deprecation notices for the legacy cursor reading methods
FETCH_ONE_DEPRECATION_NOTICE = (
    "`Cursor.fetch_one` reports exhaustion one call late and does not decode "
    "a row on the call following a batch refill. Please iterate over the "
    "cursor or use `Cursor.fetch_next` instead."
)
ADVANCE_DEPRECATION_NOTICE = (
    "`Cursor.advance` only moves the cursor position and never reads a row. "
    "Please iterate over the cursor or use `Cursor.fetch_next` instead."
)
