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

from dataclasses import dataclass, field, fields
from typing import Optional, Sequence, Set

from lcdb.constants import CallerType
from lcdb.defaults import DEFAULT_REDACTED_HEADER_NAMES, DEFAULT_REQUEST_TIMEOUT_MS


@dataclass(frozen=True)
class APIOptions:
    """
    A description of the options about how to interact with the API.

    Attributes:
        timeout_ms: the timeout, in milliseconds, for each HTTP request.
            Methods involving several requests (such as `find_all` or
            `batch_create_or_update`) apply it to each request separately.
        callers: a list of (name, version) pairs identifying the application,
            prepended to the User-Agent header of each request.
        redacted_header_names: the headers whose value must not be logged.
    """

    timeout_ms: Optional[int] = DEFAULT_REQUEST_TIMEOUT_MS
    callers: Sequence[CallerType] = ()
    redacted_header_names: Set[str] = field(
        default_factory=lambda: set(DEFAULT_REDACTED_HEADER_NAMES)
    )

    def with_override(self, override: Optional[APIOptions]) -> APIOptions:
        """
        Return a new instance created by overriding the members of this instance
        with those taken from a supplied "override" API options object,
        whenever the latter differ from the defaults.

        Args:
            override: an API options instance to preferentially draw fields from.

        Returns:
            a new instance of this class obtained by merging the override and this one.
        """
        if override is None:
            return self
        defaults = APIOptions()
        return APIOptions(
            **{
                fld.name: (
                    getattr(override, fld.name)
                    if getattr(override, fld.name) != getattr(defaults, fld.name)
                    else getattr(self, fld.name)
                )
                for fld in fields(self)
            }
        )


defaultAPIOptions = APIOptions()
