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

import logging
from typing import Any, Dict, TypedDict

from lcdb.constants import FilterType
from lcdb.defaults import (
    API_VERSION_PATH,
    CLASSES_PATH,
    DEFAULT_QUERY_LIMIT,
    DEFAULT_QUERY_SKIP,
    MAX_QUERY_STRING_LENGTH,
)
from lcdb.filters import normalize_filter
from lcdb.request_tools import HttpMethod
from lcdb.transform_payload import serialize_for_query_string

logger = logging.getLogger(__name__)


class Query(TypedDict, total=False):
    """
    The parameters of a query on a class.

    Attributes:
        where: a filter on the records, see `lcdb.filters`.
        order: comma-separated field names to sort by, each optionally
            prefixed with "-" for descending order, e.g. "-createdAt,title".
        limit: the maximum number of records to return (default 100).
            The API caps a single request to 1000 records.
        skip: the number of records to skip (default 0).
        keys: comma-separated field names to return, or to exclude if
            prefixed with "-", e.g. "title,-author".
        count: if set to 1, the total number of matching records is
            returned alongside the results.
        include: comma-separated pointer fields whose targets are to be
            returned inline, e.g. "post.author".
    """

    where: FilterType
    order: str
    limit: int
    skip: int
    keys: str
    count: int
    include: str


# the order in which the parameters appear in a query string
QUERY_KEY_ORDER = ("where", "order", "limit", "skip", "keys", "count", "include")


def merge_query_defaults(query: Query | None) -> Dict[str, Any]:
    """
    Return a new query dictionary with the default `limit` and `skip` applied
    and the `where` filter normalized to its wire form.
    """
    merged: Dict[str, Any] = {
        "limit": DEFAULT_QUERY_LIMIT,
        "skip": DEFAULT_QUERY_SKIP,
    }
    for key, value in (query or {}).items():
        if value is None:
            continue
        merged[key] = value
    if "where" in merged:
        merged["where"] = normalize_filter(merged["where"])
    return merged


def _ordered_keys(query: Dict[str, Any]) -> list[str]:
    known_keys = [key for key in QUERY_KEY_ORDER if key in query]
    extra_keys = sorted(key for key in query if key not in QUERY_KEY_ORDER)
    return known_keys + extra_keys


def to_query_string(query: Query | None) -> str:
    """
    Encode a query as a URL query string, e.g.
    `where=%7B%22title%22%3A%22a%22%7D&limit=100&skip=0`.

    The parameters always come in the same order, so that the same
    query always yields the very same string.
    """
    merged = merge_query_defaults(query)
    return "&".join(
        f"{key}={serialize_for_query_string(merged[key])}"
        for key in _ordered_keys(merged)
    )


def requires_batch_get(query_string: str) -> bool:
    """
    Whether a query string is too long to be safely appended to a URL,
    in which case the query is sent as the body of a batch request instead.
    """
    return len(query_string) > MAX_QUERY_STRING_LENGTH


def class_path(class_name: str) -> str:
    return f"/{API_VERSION_PATH}/{CLASSES_PATH}/{class_name}"


def to_batch_get_request(query: Query | None, class_name: str) -> Dict[str, Any]:
    """
    Wrap a query into a GET sub-request, to be sent through the batch endpoint.
    """
    merged = merge_query_defaults(query)
    return {
        "method": HttpMethod.GET,
        "path": class_path(class_name),
        "params": {key: merged[key] for key in _ordered_keys(merged)},
    }
