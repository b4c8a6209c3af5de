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

# Paths of the REST API
API_VERSION_PATH = "1.1"
CLASSES_PATH = "classes"
BATCH_PATH = "batch"
SEARCH_PATH = "search/select"
FILES_CLASS_NAME = "files"

# Defaults/settings for queries
DEFAULT_QUERY_LIMIT = 100
DEFAULT_QUERY_SKIP = 0
MAX_PAGE_SIZE = 1000
MAX_QUERY_STRING_LENGTH = 2000
DEFAULT_SEARCH_LIMIT = 20

# Fields managed by the server, never part of a write payload
OBJECT_ID_FIELD = "objectId"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"
RESERVED_FIELDS = (OBJECT_ID_FIELD, CREATED_AT_FIELD, UPDATED_AT_FIELD)

# Defaults/settings for requests
DEFAULT_REQUEST_TIMEOUT_MS = 30000
APP_ID_HEADER = "X-LC-Id"
SIGN_HEADER = "X-LC-Sign"
DEFAULT_CONTENT_TYPE = "application/json;charset=UTF-8"
FETCH_WHEN_SAVE_PARAM = "fetchWhenSave=true"
UNKNOWN_BATCH_ERROR_MESSAGE = "Unknown batch error"

# Settings for redacting secrets in string representations and logging
SECRETS_REDACT_ENDING = "..."
SECRETS_REDACT_CHAR = "*"
SECRETS_REDACT_ENDING_LENGTH = 3
HEADER_REDACT_PLACEHOLDER = "***"
DEFAULT_REDACTED_HEADER_NAMES = {
    SIGN_HEADER,
}
