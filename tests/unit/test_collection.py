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
import logging
from typing import Any

import pytest
import werkzeug
from deprecation import DeprecatedWarning
from pytest_httpserver import HTTPServer

from lcdb import Collection, Database
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


def _where(request: werkzeug.Request) -> Any:
    return json.loads(request.args["where"])


class TestCollectionQueries:
    @pytest.mark.describe("test of find, sync")
    def test_find_sync(self, httpserver: HTTPServer, database: Database) -> None:
        books = database.get_collection("Book")

        def handler(request: werkzeug.Request) -> werkzeug.Response:
            assert _where(request) == {"pages": {"$gt": 300}}
            assert request.args["order"] == "-createdAt"
            assert request.args["limit"] == "100"
            assert request.args["skip"] == "0"
            return json_response(
                {
                    "results": [
                        {
                            "objectId": "b1",
                            "pages": 312,
                            "publishedAt": {
                                "__type": "Date",
                                "iso": "2015-06-29T00:00:00.000Z",
                            },
                        },
                    ]
                }
            )

        httpserver.expect_oneshot_request(
            BOOK_PATH, method=HttpMethod.GET
        ).respond_with_handler(handler)
        results = books.find({"where": {"pages": {"$gt": 300}}, "order": "-createdAt"})
        assert results == [
            {"objectId": "b1", "pages": 312, "publishedAt": "2015-06-29T00:00:00.000Z"}
        ]

    @pytest.mark.describe("test of find with long queries going through batch, sync")
    def test_find_long_query_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        books = database.get_collection("Book")
        found = make_records(3)

        def batch_handler(request: werkzeug.Request) -> werkzeug.Response:
            payload = request_json(request)
            assert len(payload["requests"]) == 1
            sub_request = payload["requests"][0]
            assert sub_request["method"] == "GET"
            assert sub_request["path"] == BOOK_PATH
            assert sub_request["params"] == {
                "where": {"isbn": {"$in": LONG_ISBN_LIST}},
                "limit": 100,
                "skip": 0,
            }
            return json_response([{"success": {"results": found}}])

        httpserver.expect_oneshot_request(
            BATCH_URL_PATH, method=HttpMethod.POST
        ).respond_with_handler(batch_handler)
        long_results = books.find({"where": {"isbn": {"$in": LONG_ISBN_LIST}}})

        httpserver.expect_oneshot_request(
            BOOK_PATH, method=HttpMethod.GET
        ).respond_with_json({"results": found})
        short_results = books.find({"where": {"isbn": {"$in": LONG_ISBN_LIST[:2]}}})

        assert long_results == short_results == found
        assert [req.method for req, _ in httpserver.log] == ["POST", "GET"]

    @pytest.mark.describe("test of find with a failing batch query, sync")
    def test_find_long_query_error_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        httpserver.expect_oneshot_request(BATCH_URL_PATH).respond_with_json(
            [{"error": {"code": 102, "error": "Invalid query."}}]
        )
        with pytest.raises(LCResponseException) as exc:
            database["Book"].find({"where": {"isbn": {"$in": LONG_ISBN_LIST}}})
        assert exc.value.code == 102

    @pytest.mark.describe("test of find_all paging, sync")
    def test_find_all_sync(self, httpserver: HTTPServer, database: Database) -> None:
        httpserver.expect_request(BOOK_PATH).respond_with_handler(paging_handler(2400))
        records = database.get_collection("Book").find_all({"where": {"a": 1}})
        assert len(records) == 2400
        assert len(httpserver.log) == 3
        assert [req.args["skip"] for req, _ in httpserver.log] == ["0", "1000", "2000"]
        assert all(req.args["limit"] == "1000" for req, _ in httpserver.log)

    @pytest.mark.describe("test of find_all paging with an empty last page, sync")
    def test_find_all_empty_page_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        httpserver.expect_request(BOOK_PATH).respond_with_handler(paging_handler(1000))
        records = database.get_collection("Book").find_all()
        assert len(records) == 1000
        assert len(httpserver.log) == 2

    @pytest.mark.describe("test of find_all with a small limit, sync")
    def test_find_all_small_limit_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        httpserver.expect_request(BOOK_PATH).respond_with_handler(paging_handler(2400))
        records = database.get_collection("Book").find_all({"limit": 50, "skip": 10})
        assert [rec["seq"] for rec in records] == list(range(10, 60))
        assert len(httpserver.log) == 1

    @pytest.mark.describe("test of count, find_and_count and find_one, sync")
    def test_count_methods_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        books = database.get_collection("Book")

        def count_handler(request: werkzeug.Request) -> werkzeug.Response:
            assert request.args["count"] == "1"
            limit = int(request.args["limit"])
            return json_response({"results": make_records(limit), "count": 42})

        httpserver.expect_request(BOOK_PATH).respond_with_handler(count_handler)
        assert books.count({"where": {"a": 1}}) == 42
        assert httpserver.log[-1][0].args["limit"] == "0"

        find_and_count = books.find_and_count({"limit": 2})
        assert find_and_count.count == 42
        assert find_and_count.results == make_records(2)

        httpserver.clear()
        httpserver.expect_request(BOOK_PATH).respond_with_json({"results": []})
        assert books.find_one({"where": {"a": 0}}) is None
        assert httpserver.log[-1][0].args["limit"] == "1"

    @pytest.mark.describe("test of get, sync")
    def test_get_sync(self, httpserver: HTTPServer, database: Database) -> None:
        books = database.get_collection("Book")
        httpserver.expect_oneshot_request(f"{BOOK_PATH}/b1").respond_with_json(
            {
                "objectId": "b1",
                "updatedAt": {"__type": "Date", "iso": "2015-06-29T00:00:00.000Z"},
            }
        )
        assert books.get("b1") == {
            "objectId": "b1",
            "updatedAt": "2015-06-29T00:00:00.000Z",
        }
        httpserver.expect_oneshot_request(f"{BOOK_PATH}/b2").respond_with_json({})
        assert books.get("b2") is None

    @pytest.mark.describe("test of search, sync")
    def test_search_sync(self, httpserver: HTTPServer, database: Database) -> None:
        def search_handler(request: werkzeug.Request) -> werkzeug.Response:
            assert request.args["q"] == "dennis ritchie"
            assert request.args["clazz"] == "Book"
            assert request.args["limit"] == "20"
            assert request.args["order"] == "-pages"
            return json_response(
                {"hits": 1, "sid": "s1", "results": [{"objectId": "b1"}]}
            )

        httpserver.expect_oneshot_request(
            "/1.1/search/select", method=HttpMethod.GET
        ).respond_with_handler(search_handler)
        response = database.get_collection("Book").search(
            "dennis ritchie", order="-pages"
        )
        assert response == {"hits": 1, "sid": "s1", "results": [{"objectId": "b1"}]}


class TestCollectionWrites:
    @pytest.mark.describe("test of single-record writes, sync")
    def test_single_writes_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        books = database.get_collection("Book")

        def create_handler(request: werkzeug.Request) -> werkzeug.Response:
            assert request_json(request) == {"title": "t"}
            assert request.args["fetchWhenSave"] == "true"
            return json_response({"objectId": "new", "title": "t"}, status=201)

        httpserver.expect_oneshot_request(
            BOOK_PATH, method=HttpMethod.POST
        ).respond_with_handler(create_handler)
        created = books.create(
            {"objectId": "ignored", "title": "t"}, fetch_when_save=True
        )
        assert created == {"objectId": "new", "title": "t"}

        httpserver.expect_oneshot_request(
            f"{BOOK_PATH}/X",
            method=HttpMethod.PUT,
            json={"title": "u", "sub": {"__op": "Delete"}},
        ).respond_with_json({"updatedAt": "2015-06-29T00:00:00.000Z"})
        books.update({"title": "u", "sub": None}, "X", delete_undefined=True)

        httpserver.expect_oneshot_request(
            f"{BOOK_PATH}/Y", method=HttpMethod.PUT, json={"title": "v"}
        ).respond_with_json({"updatedAt": "2015-06-29T00:00:00.000Z"})
        books.create_or_update({"objectId": "Y", "title": "v"})

        httpserver.expect_oneshot_request(
            f"{BOOK_PATH}/Y", method=HttpMethod.DELETE
        ).respond_with_json({})
        assert books.delete("Y") == {}

        httpserver.expect_oneshot_request(
            f"{BOOK_PATH}/Z", method=HttpMethod.DELETE
        ).respond_with_json({})
        with pytest.warns(DeprecatedWarning):
            books.destory("Z")

    @pytest.mark.describe("test of batch writes with partial failures, sync")
    def test_batch_independence_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        httpserver.expect_oneshot_request(
            BATCH_URL_PATH, method=HttpMethod.POST
        ).respond_with_json(
            [
                {"success": {"objectId": "n1", "createdAt": "2015-06-29T00:00:00.000Z"}},
                {"error": {"code": 137, "error": "A unique field was given a value"}},
            ]
        )
        results = database.get_collection("Book").batch_create(
            [{"isbn": "a"}, {"isbn": "a"}]
        )
        assert len(results) == 2
        assert results[0].ok and results[0].success is not None
        assert results[0].success["objectId"] == "n1"
        assert not results[1].ok and results[1].error is not None
        assert results[1].error.code == 137

    @pytest.mark.describe("test of batch update and save, sync")
    def test_batch_update_save_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        books = database.get_collection("Book")
        with pytest.raises(LCValidationException):
            books.batch_update([{"title": "no id"}])
        assert books.batch_update([]) == []
        assert books.submit_batch([]) == []
        assert len(httpserver.log) == 0

        def batch_handler(request: werkzeug.Request) -> werkzeug.Response:
            sub_requests = request_json(request)["requests"]
            return json_response([{"success": {}} for _ in sub_requests])

        httpserver.expect_request(BATCH_URL_PATH).respond_with_handler(batch_handler)
        results = books.batch_update([{"title": "no id"}, {"objectId": "X", "n": 1}])
        assert len(results) == 1
        assert request_json(httpserver.log[-1][0]) == {
            "requests": [
                {"method": "PUT", "path": f"{BOOK_PATH}/X", "body": {"n": 1}},
            ]
        }

        books.batch_save([{"objectId": "X", "n": 1}, {"n": 2}], fetch_when_save=True)
        assert request_json(httpserver.log[-1][0]) == {
            "requests": [
                {
                    "method": "PUT",
                    "path": f"{BOOK_PATH}/X?fetchWhenSave=true",
                    "body": {"n": 1},
                },
                {
                    "method": "POST",
                    "path": f"{BOOK_PATH}?fetchWhenSave=true",
                    "body": {"n": 2},
                },
            ]
        }

    @pytest.mark.describe("test of batch delete logging failures, sync")
    def test_batch_delete_sync(
        self,
        httpserver: HTTPServer,
        database: Database,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        books = database.get_collection("Book")
        httpserver.expect_request(BATCH_URL_PATH).respond_with_json(
            [{"success": {}}, {"error": {"code": 101, "error": "Object not found."}}]
        )
        with caplog.at_level(logging.WARNING, logger="lcdb"):
            results = books.batch_delete([{"objectId": "A"}, {"objectId": "B"}])
        assert [result.ok for result in results] == [True, False]
        assert "Object not found. (code 101)" in caplog.text
        assert request_json(httpserver.log[-1][0])["requests"][1] == {
            "method": "DELETE",
            "path": f"{BOOK_PATH}/B",
        }
        with pytest.warns(DeprecatedWarning):
            books.batch_destory([{"objectId": "A"}])


class TestCollectionReconcile:
    @pytest.mark.describe("test of batch_create_or_update, sync")
    def test_batch_create_or_update_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        books = database.get_collection("Book")

        def find_handler(request: werkzeug.Request) -> werkzeug.Response:
            assert _where(request) == {"id": {"$in": [1, 2, 3]}}
            return json_response(
                {
                    "results": [
                        {"id": 1, "name": "a", "objectId": "X"},
                        {"id": 2, "name": "B", "objectId": "Y"},
                    ]
                }
            )

        def batch_handler(request: werkzeug.Request) -> werkzeug.Response:
            sub_requests = request_json(request)["requests"]
            return json_response([{"success": {"objectId": "new"}} for _ in sub_requests])

        httpserver.expect_request(
            BOOK_PATH, method=HttpMethod.GET
        ).respond_with_handler(find_handler)
        httpserver.expect_request(
            BATCH_URL_PATH, method=HttpMethod.POST
        ).respond_with_handler(batch_handler)

        local_records = [
            {"id": 1, "name": "a"},
            {"id": 2, "name": "b"},
            {"id": 3, "name": "c"},
        ]
        result = books.batch_create_or_update(local_records, "id", ["name"])
        assert result.unchanged_count == 1
        assert len(result.update_results) == 1
        assert len(result.create_results) == 1
        assert result.errors == []
        assert local_records[1]["objectId"] == "Y"

        batch_payloads = [
            request_json(req)
            for req, _ in httpserver.log
            if req.path == BATCH_URL_PATH
        ]
        assert batch_payloads == [
            {
                "requests": [
                    {
                        "method": "PUT",
                        "path": f"{BOOK_PATH}/Y",
                        "body": {"id": 2, "name": "b"},
                    }
                ]
            },
            {
                "requests": [
                    {"method": "POST", "path": BOOK_PATH, "body": {"id": 3, "name": "c"}}
                ]
            },
        ]

    @pytest.mark.describe("test of batch_create_or_update without join values, sync")
    def test_batch_create_or_update_no_keys_sync(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        books = database.get_collection("Book")
        with pytest.raises(LCValidationException):
            books.batch_create_or_update([{"name": "a"}, {"name": "b"}], "id")
        with pytest.raises(LCValidationException):
            books.find_in_keys([{"id": None}], "id")
        empty_result = books.batch_create_or_update([], "id")
        assert empty_result.update_results == empty_result.create_results == []
        assert len(httpserver.log) == 0


class TestCollectionConversions:
    @pytest.mark.describe("test of collection conversions and equality")
    def test_collection_conversions(self, database: Database) -> None:
        books = database.get_collection("Book")
        assert books == database["Book"]
        assert books != database.get_collection("Author")
        assert books.to_async().to_sync() == books
        assert isinstance(books.to_async().to_sync(), Collection)
        assert database.to_async().to_sync() == database
        with pytest.raises(ValueError):
            database.get_collection("")

    @pytest.mark.describe("test of cross-class batch on the database, sync")
    def test_database_submit_batch(
        self, httpserver: HTTPServer, database: Database
    ) -> None:
        httpserver.expect_oneshot_request(BATCH_URL_PATH).respond_with_json(
            [{"success": {}}, {"success": {}}]
        )
        results = database.submit_batch(
            [
                {"method": "DELETE", "path": f"{BOOK_PATH}/A"},
                {"method": "POST", "path": f"{CLASSES_BASE}/Author", "body": {"n": 1}},
            ]
        )
        assert all(result.ok for result in results)

    @pytest.mark.describe("test of listing the files of the application, sync")
    def test_database_files(self, httpserver: HTTPServer, database: Database) -> None:
        def handler(request: werkzeug.Request) -> werkzeug.Response:
            assert request.args["order"] == "-createdAt"
            return json_response(
                {
                    "results": [
                        {"objectId": "f1", "name": "cover.png", "size": 2048},
                    ]
                }
            )

        httpserver.expect_oneshot_request(
            f"{CLASSES_BASE}/files", method=HttpMethod.GET
        ).respond_with_handler(handler)
        assert database.files({"order": "-createdAt"}) == [
            {"objectId": "f1", "name": "cover.png", "size": 2048}
        ]
