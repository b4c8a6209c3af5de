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

"""
Main conftest for shared fixtures.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Callable, Iterator

import pytest
import werkzeug
from pytest_httpserver import HTTPServer

from lcdb import AsyncDatabase, Database

TEST_APP_ID = "test-app-id"
TEST_APP_KEY = "test-app-key"
CLASSES_BASE = "/1.1/classes"
BATCH_URL_PATH = "/1.1/batch"


def json_response(payload: Any, status: int = 200) -> werkzeug.Response:
    return werkzeug.Response(
        json.dumps(payload),
        status=status,
        content_type="application/json",
    )


def request_json(request: werkzeug.Request) -> Any:
    return json.loads(request.get_data(as_text=True))


def make_records(how_many: int, start: int = 0) -> list[dict[str, Any]]:
    return [
        {"objectId": f"oid{i:05}", "seq": i, "title": f"title_{i}"}
        for i in range(start, start + how_many)
    ]


def paging_handler(
    total_records: int,
) -> Callable[[werkzeug.Request], werkzeug.Response]:
    """A handler serving the slice of `total_records` records the query asks for."""

    def _paging_handler(request: werkzeug.Request) -> werkzeug.Response:
        skip = int(request.args.get("skip", "0"))
        limit = int(request.args.get("limit", "100"))
        how_many = max(0, min(limit, total_records - skip))
        return json_response({"results": make_records(how_many, start=skip)})

    return _paging_handler


@pytest.fixture
def database(httpserver: HTTPServer) -> Iterator[Database]:
    yield Database(TEST_APP_ID, TEST_APP_KEY, httpserver.url_for("/"))


@pytest.fixture
async def async_database(httpserver: HTTPServer) -> AsyncIterator[AsyncDatabase]:
    async with AsyncDatabase(
        TEST_APP_ID, TEST_APP_KEY, httpserver.url_for("/")
    ) as async_db:
        yield async_db


__all__ = [
    "BATCH_URL_PATH",
    "CLASSES_BASE",
    "TEST_APP_ID",
    "TEST_APP_KEY",
    "json_response",
    "make_records",
    "paging_handler",
    "request_json",
]
