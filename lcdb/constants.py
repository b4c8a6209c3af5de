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

from typing import Any, Dict, Optional, Tuple

RecordType = Dict[str, Any]
FilterType = Dict[str, Any]
ConditionType = Dict[str, Any]
CallerType = Tuple[Optional[str], Optional[str]]


class TypeTag:
    """
    Values of the `__type` discriminator marking rich values on the wire,
    e.g. `{"__type": "Date", "iso": "2015-06-29T00:00:00.000Z"}`.
    """

    def __init__(self) -> None:
        raise NotImplementedError

    DATE = "Date"
    BYTES = "Bytes"
    POINTER = "Pointer"
    FILE = "File"
    GEO_POINT = "GeoPoint"

    values = {DATE, BYTES, POINTER, FILE, GEO_POINT}
