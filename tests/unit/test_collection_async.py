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

import json

import pytest
import werkzeug
from deprecation import DeprecatedWarning
from pytest_httpserver import HTTPServer

from lcdb import AsyncCollection, AsyncDatabase
from lcdb.exceptions import LCResponseException, LCValidationException
from lcdb.request_tools import HttpMethod

from ..conftest import (
    BATCH_URL_PATH,
    CLASSES_BASE,
    json_response,
    make_records,
    paging_handler,
    request_json,
)

BOOK_PATH = f"{CLASSES_BASE}/Book"
LONG_ISBN_LIST = [f"isbn-{i:08}" for i in range(200)]


class TestAsyncCollectionQueries:
    @pytest.mark.describe("test of find, async")
    async def test_find_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        def handler(request: werkzeug.Request) -> werkzeug.Response:
            assert json.loads(request.args["where"]) == {"title": {"$regex": "^W"}}
            return json_response(
                {
                    "results": [
                        {
                            "objectId": "b1",
                            "at": {"__type": "Date", "iso": "2015-06-29T00:00:00.000Z"},
                        }
                    ]
                }
            )

        httpserver.expect_oneshot_request(
            BOOK_PATH, method=HttpMethod.GET
        ).respond_with_handler(handler)
        books = async_database.get_collection("Book")
        assert await books.find({"where": {"title": {"$regex": "^W"}}}) == [
            {"objectId": "b1", "at": "2015-06-29T00:00:00.000Z"}
        ]

    @pytest.mark.describe("test of find with long queries going through batch, async")
    async def test_find_long_query_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        found = make_records(2)
        httpserver.expect_oneshot_request(
            BATCH_URL_PATH, method=HttpMethod.POST
        ).respond_with_json([{"success": {"results": found}}])
        httpserver.expect_oneshot_request(
            BOOK_PATH, method=HttpMethod.GET
        ).respond_with_json({"results": found})
        books = async_database.get_collection("Book")
        long_results = await books.find({"where": {"isbn": {"$in": LONG_ISBN_LIST}}})
        short_results = await books.find({"where": {"isbn": {"$in": ["a"]}}})
        assert long_results == short_results == found

        httpserver.expect_oneshot_request(BATCH_URL_PATH).respond_with_json(
            [{"error": {"code": 102, "error": "Invalid query."}}]
        )
        with pytest.raises(LCResponseException):
            await books.find({"where": {"isbn": {"$in": LONG_ISBN_LIST}}})

    @pytest.mark.describe("test of find_all paging, async")
    async def test_find_all_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        httpserver.expect_request(BOOK_PATH).respond_with_handler(paging_handler(2400))
        records = await async_database.get_collection("Book").find_all()
        assert len(records) == 2400
        assert [req.args["skip"] for req, _ in httpserver.log] == ["0", "1000", "2000"]

    @pytest.mark.describe("test of find_all paging with an empty last page, async")
    async def test_find_all_empty_page_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        httpserver.expect_request(BOOK_PATH).respond_with_handler(paging_handler(1000))
        records = await async_database.get_collection("Book").find_all()
        assert len(records) == 1000
        assert len(httpserver.log) == 2

    @pytest.mark.describe("test of count, find_one and get, async")
    async def test_count_get_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        books = async_database.get_collection("Book")
        httpserver.expect_oneshot_request(BOOK_PATH).respond_with_json(
            {"results": [], "count": 7}
        )
        assert await books.count() == 7
        httpserver.expect_oneshot_request(BOOK_PATH).respond_with_json(
            {"results": make_records(1)}
        )
        assert await books.find_one() == make_records(1)[0]
        httpserver.expect_oneshot_request(f"{BOOK_PATH}/nope").respond_with_json({})
        assert await books.get("nope") is None


class TestAsyncCollectionWrites:
    @pytest.mark.describe("test of single-record writes, async")
    async def test_single_writes_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        books = async_database.get_collection("Book")
        httpserver.expect_oneshot_request(
            BOOK_PATH, method=HttpMethod.POST, json={"title": "t"}
        ).respond_with_json({"objectId": "new"})
        assert await books.create_or_update({"title": "t"}) == {"objectId": "new"}

        httpserver.expect_oneshot_request(
            f"{BOOK_PATH}/new", method=HttpMethod.PUT, json={"title": "u"}
        ).respond_with_json({"updatedAt": "2015-06-29T00:00:00.000Z"})
        await books.update({"title": "u"}, "new")

        httpserver.expect_oneshot_request(
            f"{BOOK_PATH}/new", method=HttpMethod.DELETE
        ).respond_with_json({})
        with pytest.warns(DeprecatedWarning):
            await books.destory("new")

    @pytest.mark.describe("test of batch writes with partial failures, async")
    async def test_batch_independence_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        httpserver.expect_oneshot_request(BATCH_URL_PATH).respond_with_json(
            [
                {"error": {"code": 137, "error": "A unique field was given a value"}},
                {"success": {"objectId": "n2"}},
            ]
        )
        results = await async_database.get_collection("Book").batch_create(
            [{"isbn": "a"}, {"isbn": "b"}]
        )
        assert [result.ok for result in results] == [False, True]
        assert results[0].error is not None and results[0].error.code == 137

    @pytest.mark.describe("test of batch_create_or_update, async")
    async def test_batch_create_or_update_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        books = async_database.get_collection("Book")
        httpserver.expect_request(BOOK_PATH, method=HttpMethod.GET).respond_with_json(
            {
                "results": [
                    {"id": 1, "name": "a", "objectId": "X"},
                    {"id": 2, "name": "B", "objectId": "Y"},
                ]
            }
        )

        def batch_handler(request: werkzeug.Request) -> werkzeug.Response:
            sub_requests = request_json(request)["requests"]
            return json_response([{"success": {}} for _ in sub_requests])

        httpserver.expect_request(
            BATCH_URL_PATH, method=HttpMethod.POST
        ).respond_with_handler(batch_handler)

        result = await books.batch_create_or_update(
            [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}, {"id": 3, "name": "c"}],
            join_key="id",
            check_keys=["name"],
        )
        assert result.unchanged_count == 1
        batch_methods = [
            [sub["method"] for sub in request_json(req)["requests"]]
            for req, _ in httpserver.log
            if req.path == BATCH_URL_PATH
        ]
        assert batch_methods == [["PUT"], ["POST"]]

    @pytest.mark.describe("test of batch_create_or_update without join values, async")
    async def test_batch_create_or_update_no_keys_async(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        books = async_database.get_collection("Book")
        with pytest.raises(LCValidationException):
            await books.batch_create_or_update([{"name": "a"}], "id")
        with pytest.raises(LCValidationException):
            await books.batch_update([{"name": "a"}])
        assert len(httpserver.log) == 0


class TestAsyncCollectionConversions:
    @pytest.mark.describe("test of async collection conversions")
    async def test_async_collection_conversions(
        self, async_database: AsyncDatabase
    ) -> None:
        books = async_database.get_collection("Book")
        assert books == async_database["Book"]
        assert isinstance(books, AsyncCollection)
        assert books.to_sync().to_async() == books
        assert async_database.to_sync().to_async() == async_database

    @pytest.mark.describe("test of cross-class batch on the database, async")
    async def test_async_database_submit_batch(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        assert await async_database.submit_batch([]) == []
        httpserver.expect_oneshot_request(BATCH_URL_PATH).respond_with_json(
            [{"success": {}}]
        )
        results = await async_database.submit_batch(
            [{"method": "DELETE", "path": f"{BOOK_PATH}/A"}]
        )
        assert results[0].ok

    @pytest.mark.describe("test of listing the files of the application, async")
    async def test_async_database_files(
        self, httpserver: HTTPServer, async_database: AsyncDatabase
    ) -> None:
        httpserver.expect_oneshot_request(
            f"{CLASSES_BASE}/files", method=HttpMethod.GET
        ).respond_with_json({"results": [{"objectId": "f1", "name": "cover.png"}]})
        assert await async_database.files() == [
            {"objectId": "f1", "name": "cover.png"}
        ]
