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

import importlib.metadata


def get_version() -> str:
    try:
        return importlib.metadata.version(__package__)
    # not installed, e.g. when running from a source checkout
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


__version__: str = get_version()


import lcdb.constants  # noqa: F401, E402
import lcdb.filters  # noqa: F401, E402
from lcdb.api_options import APIOptions  # noqa: E402
from lcdb.authentication import (  # noqa: E402
    AppKeySigner,
    MasterKeySigner,
    RequestSigner,
)
from lcdb.collection import AsyncCollection, Collection  # noqa: E402
from lcdb.data_types import UNSET, GeoPoint, Pointer  # noqa: E402
from lcdb.database import AsyncDatabase, Database  # noqa: E402
from lcdb.exceptions import (  # noqa: E402
    LCErrorDescriptor,
    LCException,
    LCFaultyResponseException,
    LCHttpException,
    LCResponseException,
    LCTimeoutException,
    LCValidationException,
)
from lcdb.query import Query  # noqa: E402
from lcdb.results import (  # noqa: E402
    BatchCreateOrUpdateResult,
    BatchItemResult,
    FindAndCountResult,
)

__all__ = [
    "APIOptions",
    "AppKeySigner",
    "AsyncCollection",
    "AsyncDatabase",
    "BatchCreateOrUpdateResult",
    "BatchItemResult",
    "Collection",
    "Database",
    "FindAndCountResult",
    "GeoPoint",
    "LCErrorDescriptor",
    "LCException",
    "LCFaultyResponseException",
    "LCHttpException",
    "LCResponseException",
    "LCTimeoutException",
    "LCValidationException",
    "MasterKeySigner",
    "Pointer",
    "Query",
    "RequestSigner",
    "UNSET",
    "__version__",
]


__pdoc__ = {
    "api_commander": False,
    "request_tools": False,
}
