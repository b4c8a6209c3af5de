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
import warnings
from types import TracebackType
from typing import TYPE_CHECKING, Any, Iterable, Sequence
from urllib.parse import urlencode

from deprecation import DeprecatedWarning

from lcdb.batch import (
    BatchRequest,
    build_create_request,
    build_delete_request,
    build_save_request,
    build_update_request,
    distinct_values,
    reconcile,
)
from lcdb.constants import RecordType
from lcdb.defaults import (
    BATCH_PATH,
    CLASSES_PATH,
    DEFAULT_SEARCH_LIMIT,
    FETCH_WHEN_SAVE_PARAM,
    MAX_PAGE_SIZE,
    OBJECT_ID_FIELD,
    SEARCH_PATH,
    UNKNOWN_BATCH_ERROR_MESSAGE,
)
from lcdb.exceptions import (
    LCErrorDescriptor,
    LCFaultyResponseException,
    LCResponseException,
    LCValidationException,
)
from lcdb.filters import in_values
from lcdb.paging import async_fetch_all_pages, fetch_all_pages
from lcdb.query import (
    Query,
    requires_batch_get,
    to_batch_get_request,
    to_query_string,
)
from lcdb.request_tools import HttpMethod
from lcdb.results import (
    BatchCreateOrUpdateResult,
    BatchItemResult,
    FindAndCountResult,
    ReconcileResult,
    parse_batch_response,
)
from lcdb.transform_payload import decode_record, decode_results, encode_for_write

if TYPE_CHECKING:
    from lcdb.database import AsyncDatabase, Database


logger = logging.getLogger(__name__)


def _batch_payload(requests: Sequence[BatchRequest]) -> dict[str, Any]:
    return {"requests": list(requests)}


def _unwrap_batch_get_response(raw_response: Any) -> dict[str, Any]:
    """
    Extract the outcome of the single GET sub-request of a batch call,
    raising if the sub-request failed.
    """
    items = parse_batch_response(raw_response)
    if not items:
        raise LCFaultyResponseException(
            text="Empty response from a batch query.",
            raw_response=raw_response,
        )
    item = items[0]
    if item.error is not None:
        logger.error(f"batch query failed: {item.error}")
        raise LCResponseException(
            item.error.message or UNKNOWN_BATCH_ERROR_MESSAGE,
            raw_response=raw_response,
            error_descriptor=item.error,
        )
    if item.success is None:
        raise LCResponseException(
            UNKNOWN_BATCH_ERROR_MESSAGE,
            raw_response=raw_response,
            error_descriptor=LCErrorDescriptor(UNKNOWN_BATCH_ERROR_MESSAGE),
        )
    return item.success


def _results_from_response(raw_response: Any) -> list[RecordType]:
    if not isinstance(raw_response, dict) or not isinstance(
        raw_response.get("results"), list
    ):
        raise LCFaultyResponseException(
            text="Faulty response from a query: no 'results' list.",
            raw_response=raw_response,
        )
    return decode_results(raw_response["results"])


def _count_from_response(raw_response: Any) -> int:
    count = raw_response.get("count") if isinstance(raw_response, dict) else None
    if not isinstance(count, int):
        raise LCFaultyResponseException(
            text="Faulty response from a count query: no 'count' integer.",
            raw_response=raw_response,
        )
    return count


def _is_single_page_query(query: Query | None) -> bool:
    limit = (query or {}).get("limit")
    return limit is not None and limit <= MAX_PAGE_SIZE


def _join_key_values(records: Sequence[RecordType], key: str) -> list[Any]:
    values = distinct_values(records, key)
    if not values:
        logger.error(f"no value found for key '{key}' in the records")
        raise LCValidationException(f"No value found for key '{key}' in the records.")
    return values


def _records_with_object_id(records: Iterable[RecordType]) -> list[RecordType]:
    records_with_id = [record for record in records if record.get(OBJECT_ID_FIELD)]
    if not records_with_id:
        logger.error("batch_update: no record has an objectId")
        raise LCValidationException("No record to update: none has an objectId.")
    return records_with_id


def _log_batch_errors(method_name: str, results: list[BatchItemResult]) -> None:
    errors = [item.error for item in results if item.error is not None]
    if errors:
        logger.warning(
            f"{method_name}: {len(errors)} of {len(results)} sub-request(s) failed: "
            + "; ".join(str(error) for error in errors)
        )


def _warn_misspelled_alias(old_name: str, new_name: str) -> None:
    the_warning = DeprecatedWarning(
        f"Method '{old_name}'",
        deprecated_in="0.2.0",
        removed_in="1.0.0",
        details=f"Please use '{new_name}' instead.",
    )
    warnings.warn(the_warning, stacklevel=3)


class Collection:
    """
    A handle to a class (i.e. a collection of records) of the backend, to run
    queries and writes on it.
    This class has a synchronous interface.

    A Collection is spawned from a Database object, from which it inherits
    the connection details (server URL, app credentials, API options).

    Args:
        database: a Database object, representing the application to work with.
        name: the name of the class.

    Example:
        >>> from lcdb import Database
        >>> database = Database("my-app-id", "my-app-key", "https://my-server.com")
        >>> books = database.get_collection("Book")
        >>> books.find({"where": {"pages": {"$gt": 300}}, "order": "-createdAt"})
        [{'objectId': '558e20cbe4b060308e3eb36c', 'pages': 312, ...}, ...]
    """

    def __init__(self, database: Database, name: str) -> None:
        if not name:
            raise ValueError("Must provide a collection name")
        self.database = database
        self.name = name
        self._api_commander = database._api_commander
        self._class_path = f"{CLASSES_PATH}/{self.name}"

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f"database={self.database})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Collection):
            return self.name == other.name and self.database == other.database
        else:
            return False

    def to_async(self) -> AsyncCollection:
        """
        Create an AsyncCollection from this one, for the same class.

        Returns:
            the new copy, an AsyncCollection instance.
        """
        return AsyncCollection(self.database.to_async(), self.name)

    def _find_raw(self, query: Query | None) -> dict[str, Any]:
        query_string = to_query_string(query)
        if requires_batch_get(query_string):
            logger.info(f"query on '{self.name}' through the batch endpoint")
            raw_response = self._api_commander.request(
                http_method=HttpMethod.POST,
                path=BATCH_PATH,
                payload=_batch_payload([to_batch_get_request(query, self.name)]),
            )
            return _unwrap_batch_get_response(raw_response)
        return self._api_commander.request(
            http_method=HttpMethod.GET,
            path=self._class_path,
            query_string=query_string,
        )

    def find(self, query: Query | None = None) -> list[RecordType]:
        """
        Run a query on the class, returning at most one page of records.

        Args:
            query: a Query dictionary (see `lcdb.query.Query`). If `limit` and
                `skip` are not given, they default to 100 and 0.

        Returns:
            the list of matching records. Tagged dates are turned into
            their ISO-8601 string.

        Note:
            Queries whose encoding would make for an exceedingly long URL
            are transparently sent as the body of a batch call.
        """
        logger.info(f"find on '{self.name}'")
        results = _results_from_response(self._find_raw(query))
        logger.info(f"finished find on '{self.name}'")
        return results

    def find_all(self, query: Query | None = None) -> list[RecordType]:
        """
        Run a query and return all matching records, however many.

        If the query has a `limit` not exceeding 1000, this is the same as `find`.
        Otherwise, pages of 1000 records are requested one after the other until
        the results are exhausted.

        Args:
            query: a Query dictionary. It is not modified.

        Returns:
            the list of all matching records.
        """
        if _is_single_page_query(query):
            return self.find(query)
        logger.info(f"find_all on '{self.name}'")
        results = fetch_all_pages(self.find, query)
        logger.info(f"finished find_all on '{self.name}' ({len(results)} records)")
        return results

    def find_and_count(self, query: Query | None = None) -> FindAndCountResult:
        """
        Run a query, returning one page of records along with the total number
        of records matching the filter.

        Args:
            query: a Query dictionary.

        Returns:
            a FindAndCountResult with the records and the count.
        """
        count_query: Query = {**(query or {}), "count": 1}  # type: ignore[typeddict-item]
        logger.info(f"find_and_count on '{self.name}'")
        raw_response = self._find_raw(count_query)
        logger.info(f"finished find_and_count on '{self.name}'")
        return FindAndCountResult(
            results=_results_from_response(raw_response),
            count=raw_response.get("count"),
        )

    def count(self, query: Query | None = None) -> int:
        """
        Count the records matching the filter of a query.

        Args:
            query: a Query dictionary. Only its `where` is relevant.

        Returns:
            the number of matching records.
        """
        count_query: Query = {**(query or {}), "count": 1, "limit": 0}  # type: ignore[typeddict-item]
        logger.info(f"count on '{self.name}'")
        raw_response = self._find_raw(count_query)
        logger.info(f"finished count on '{self.name}'")
        return _count_from_response(raw_response)

    def find_one(self, query: Query | None = None) -> RecordType | None:
        """
        Return the first record matching a query, or None if there is none.

        Args:
            query: a Query dictionary. Its `limit` is overridden.
        """
        one_query: Query = {**(query or {}), "limit": 1}  # type: ignore[typeddict-item]
        results = self.find(one_query)
        if not results:
            return None
        return results[0]

    def get(self, object_id: str) -> RecordType | None:
        """
        Retrieve a record by its objectId.

        Returns:
            the record, or None if no record has this objectId.
        """
        raw_response = self._api_commander.request(
            http_method=HttpMethod.GET,
            path=f"{self._class_path}/{object_id}",
        )
        if not raw_response:
            return None
        return decode_record(raw_response)

    def search(
        self,
        q: str,
        *,
        skip: int = 0,
        limit: int = DEFAULT_SEARCH_LIMIT,
        order: str | None = None,
        sid: str | None = None,
    ) -> dict[str, Any]:
        """
        Run a full-text search on the records of this class (the class
        must have search enabled on the backend).

        Args:
            q: the search expression.
            skip: the number of hits to skip.
            limit: the maximum number of hits to return.
            order: comma-separated fields to sort by, "-" for descending order.
            sid: the search session id returned by a previous search,
                to get the next hits.

        Returns:
            the API response, whose "results" hold the decoded records,
            alongside "hits" and "sid".
        """
        params: dict[str, Any] = {
            "q": q,
            "limit": limit,
            "skip": skip,
            "clazz": self.name,
        }
        if order is not None:
            params["order"] = order
        if sid is not None:
            params["sid"] = sid
        logger.info(f"search on '{self.name}'")
        raw_response = self._api_commander.request(
            http_method=HttpMethod.GET,
            path=SEARCH_PATH,
            query_string=urlencode(params),
        )
        logger.info(f"finished search on '{self.name}'")
        return {**raw_response, "results": _results_from_response(raw_response)}

    def find_in_keys(self, records: Sequence[RecordType], key: str) -> list[RecordType]:
        """
        Retrieve the remote records having the same value for `key` as any
        of the provided local records. For instance, `find_in_keys(books, "isbn")`
        returns the stored books whose isbn is found among those of `books`.

        Args:
            records: the local records.
            key: the name of the field to match on.

        Returns:
            the list of matching remote records.

        Raises:
            LCValidationException: if no record has a value for `key`. In this
                case no request is made.
        """
        values = _join_key_values(records, key)
        return self.find_all({"where": {key: in_values(values)}})

    def create(
        self,
        record: RecordType,
        *,
        fetch_when_save: bool = False,
    ) -> dict[str, Any]:
        """
        Create a record. Its objectId, createdAt and updatedAt fields are ignored.

        Args:
            record: the record to write.
            fetch_when_save: if True, the whole stored record is returned.

        Returns:
            the API response, with (at least) the new objectId and createdAt.
        """
        logger.info(f"create on '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.POST,
            path=self._class_path,
            query_string=FETCH_WHEN_SAVE_PARAM if fetch_when_save else None,
            payload=encode_for_write(record),
        )
        logger.info(f"finished create on '{self.name}'")
        return response

    def update(
        self,
        record: RecordType,
        object_id: str,
        *,
        delete_undefined: bool = False,
        fetch_when_save: bool = False,
    ) -> dict[str, Any]:
        """
        Update the fields of a record with those provided.

        Args:
            record: the fields to write. objectId, createdAt, updatedAt are ignored.
            object_id: the objectId of the record to update.
            delete_undefined: if True, fields set to None (or UNSET) are removed
                from the stored record.
            fetch_when_save: if True, the updated fields are returned.

        Returns:
            the API response, with (at least) updatedAt.
        """
        logger.info(f"update on '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.PUT,
            path=f"{self._class_path}/{object_id}",
            query_string=FETCH_WHEN_SAVE_PARAM if fetch_when_save else None,
            payload=encode_for_write(record, delete_undefined=delete_undefined),
        )
        logger.info(f"finished update on '{self.name}'")
        return response

    def create_or_update(self, record: RecordType) -> dict[str, Any]:
        """Update the record if it has an objectId, create it otherwise."""
        object_id = record.get(OBJECT_ID_FIELD)
        if object_id:
            return self.update(record, object_id)
        return self.create(record)

    def delete(self, object_id: str) -> dict[str, Any]:
        """
        Delete a record by its objectId.

        Returns:
            the API response (an empty dictionary on success).
        """
        logger.info(f"delete on '{self.name}'")
        response = self._api_commander.request(
            http_method=HttpMethod.DELETE,
            path=f"{self._class_path}/{object_id}",
        )
        logger.info(f"finished delete on '{self.name}'")
        return response

    def destory(self, object_id: str) -> dict[str, Any]:
        """Deprecated alias of `delete`."""
        _warn_misspelled_alias("destory", "delete")
        return self.delete(object_id)

    def submit_batch(self, requests: Sequence[BatchRequest]) -> list[BatchItemResult]:
        """
        Send several sub-requests in a single batch call.

        The call is not atomic: each sub-request succeeds or fails on its own,
        and failures are reported in the returned items rather than raised.

        Args:
            requests: the sub-requests, see `lcdb.batch.BatchRequest`.

        Returns:
            a list of BatchItemResult, aligned with the sub-requests.
        """
        if not requests:
            return []
        logger.info(f"batch of {len(requests)} sub-request(s) on '{self.name}'")
        raw_response = self._api_commander.request(
            http_method=HttpMethod.POST,
            path=BATCH_PATH,
            payload=_batch_payload(requests),
        )
        logger.info(f"finished batch on '{self.name}'")
        return parse_batch_response(raw_response)

    def batch_save(
        self,
        records: Sequence[RecordType],
        *,
        delete_undefined: bool = False,
        fetch_when_save: bool = False,
    ) -> list[BatchItemResult]:
        """
        Write records in a single batch call: those with an objectId are updated,
        the others are created.

        Args:
            records: the records to write.
            delete_undefined: if True, fields set to None (or UNSET) are removed.
            fetch_when_save: if True, the written fields are returned.

        Returns:
            a list of BatchItemResult, aligned with the records.
        """
        return self.submit_batch(
            [
                build_save_request(
                    self.name,
                    record,
                    delete_undefined=delete_undefined,
                    fetch_when_save=fetch_when_save,
                )
                for record in records
            ]
        )

    def batch_create(self, records: Sequence[RecordType]) -> list[BatchItemResult]:
        """
        Create records in a single batch call. Their objectId is ignored.

        Returns:
            a list of BatchItemResult, aligned with the records.
        """
        return self.submit_batch(
            [build_create_request(self.name, record) for record in records]
        )

    def batch_update(
        self,
        records: Sequence[RecordType],
        *,
        delete_undefined: bool = False,
    ) -> list[BatchItemResult]:
        """
        Update records in a single batch call. Records without an objectId
        are skipped.

        Args:
            records: the records to write.
            delete_undefined: if True, fields set to None (or UNSET) are removed.

        Returns:
            a list of BatchItemResult, aligned with the records having an objectId.

        Raises:
            LCValidationException: if records are given but none has an objectId.
        """
        if not records:
            return []
        return self.submit_batch(
            [
                build_update_request(
                    self.name, record, delete_undefined=delete_undefined
                )
                for record in _records_with_object_id(records)
            ]
        )

    def batch_delete(self, records: Sequence[RecordType]) -> list[BatchItemResult]:
        """
        Delete records, identified by their objectId, in a single batch call.

        Returns:
            a list of BatchItemResult, aligned with the records. Failed deletions
            are logged and reported in the items, not raised.
        """
        results = self.submit_batch(
            [build_delete_request(self.name, record) for record in records]
        )
        _log_batch_errors("batch_delete", results)
        return results

    def batch_destory(self, records: Sequence[RecordType]) -> list[BatchItemResult]:
        """Deprecated alias of `batch_delete`."""
        _warn_misspelled_alias("batch_destory", "batch_delete")
        return self.batch_delete(records)

    def _upload_reconciled(
        self, reconciled: ReconcileResult
    ) -> BatchCreateOrUpdateResult:
        result = BatchCreateOrUpdateResult(unchanged_count=len(reconciled.unchanged))
        if reconciled.updates:
            result.update_results = self.batch_update(reconciled.updates)
        if reconciled.creates:
            result.create_results = self.batch_create(reconciled.creates)
        return result

    def batch_compare_and_upload(
        self,
        records: Sequence[RecordType],
        remote_records: Sequence[RecordType],
        *,
        join_key: str = OBJECT_ID_FIELD,
        check_keys: Sequence[str] = (),
    ) -> BatchCreateOrUpdateResult:
        """
        Match local records with already-retrieved remote records on `join_key`,
        then update those that changed and create those with no counterpart.
        See `batch_create_or_update` for the details.
        """
        reconciled = reconcile(records, remote_records, join_key, check_keys)
        return self._upload_reconciled(reconciled)

    def batch_create_or_update(
        self,
        records: Sequence[RecordType],
        join_key: str = OBJECT_ID_FIELD,
        check_keys: Sequence[str] = (),
    ) -> BatchCreateOrUpdateResult:
        """
        Synchronize local records with the class: each record is matched with
        the stored record having the same value for `join_key`; matched records
        that differ on the compared fields are updated, unmatched ones are created,
        the others are left alone.

        Args:
            records: the local records. Records to update get the objectId
                of their stored counterpart set in place.
            join_key: the field used to match local and stored records.
            check_keys: the fields to compare. If empty, all fields of the local
                record (save objectId, createdAt and updatedAt) are compared.

        Returns:
            a BatchCreateOrUpdateResult, with the items of the two batch calls
            (one for updates, one for creations) that may have been made.

        Raises:
            LCValidationException: if no record has a value for `join_key`.

        Note:
            The updates and the creations are two independent batch calls, and
            neither is atomic: inspect the returned items for per-record failures.
        """
        if not records:
            return BatchCreateOrUpdateResult()
        remote_records = self.find_in_keys(records, join_key)
        return self.batch_compare_and_upload(
            records,
            remote_records,
            join_key=join_key,
            check_keys=check_keys,
        )


class AsyncCollection:
    """
    A handle to a class (i.e. a collection of records) of the backend, to run
    queries and writes on it.
    This class has an asynchronous interface for use with asyncio.

    An AsyncCollection is spawned from an AsyncDatabase object, from which it
    inherits the connection details (server URL, app credentials, API options).

    Args:
        database: an AsyncDatabase object, representing the application.
        name: the name of the class.

    Example:
        >>> from lcdb import AsyncDatabase
        >>> database = AsyncDatabase("my-app-id", "my-app-key", "https://my-server.com")
        >>> books = database.get_collection("Book")
        >>> await books.count({"where": {"pages": {"$gt": 300}}})
        42
    """

    def __init__(self, database: AsyncDatabase, name: str) -> None:
        if not name:
            raise ValueError("Must provide a collection name")
        self.database = database
        self.name = name
        self._api_commander = database._api_commander
        self._class_path = f"{CLASSES_PATH}/{self.name}"

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f"database={self.database})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncCollection):
            return self.name == other.name and self.database == other.database
        else:
            return False

    async def __aenter__(self) -> AsyncCollection:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self._api_commander.__aexit__(exc_type, exc_value, traceback)

    def to_sync(self) -> Collection:
        """
        Create a Collection from this one, for the same class.

        Returns:
            the new copy, a Collection instance.
        """
        return Collection(self.database.to_sync(), self.name)

    async def _find_raw(self, query: Query | None) -> dict[str, Any]:
        query_string = to_query_string(query)
        if requires_batch_get(query_string):
            logger.info(f"query on '{self.name}' through the batch endpoint")
            raw_response = await self._api_commander.async_request(
                http_method=HttpMethod.POST,
                path=BATCH_PATH,
                payload=_batch_payload([to_batch_get_request(query, self.name)]),
            )
            return _unwrap_batch_get_response(raw_response)
        return await self._api_commander.async_request(
            http_method=HttpMethod.GET,
            path=self._class_path,
            query_string=query_string,
        )

    async def find(self, query: Query | None = None) -> list[RecordType]:
        """
        Run a query on the class, returning at most one page of records.
        Async version of the method, for use in an asyncio context.

        Args:
            query: a Query dictionary (see `lcdb.query.Query`). If `limit` and
                `skip` are not given, they default to 100 and 0.

        Returns:
            the list of matching records.
        """
        logger.info(f"find on '{self.name}'")
        results = _results_from_response(await self._find_raw(query))
        logger.info(f"finished find on '{self.name}'")
        return results

    async def find_all(self, query: Query | None = None) -> list[RecordType]:
        """
        Run a query and return all matching records, however many.
        Async version of the method, for use in an asyncio context.

        Pages of 1000 records are awaited one after the other, unless
        the query has a `limit` not exceeding 1000.
        """
        if _is_single_page_query(query):
            return await self.find(query)
        logger.info(f"find_all on '{self.name}'")
        results = await async_fetch_all_pages(self.find, query)
        logger.info(f"finished find_all on '{self.name}' ({len(results)} records)")
        return results

    async def find_and_count(self, query: Query | None = None) -> FindAndCountResult:
        """
        Run a query, returning one page of records along with the total count.
        Async version of the method, for use in an asyncio context.
        """
        count_query: Query = {**(query or {}), "count": 1}  # type: ignore[typeddict-item]
        logger.info(f"find_and_count on '{self.name}'")
        raw_response = await self._find_raw(count_query)
        logger.info(f"finished find_and_count on '{self.name}'")
        return FindAndCountResult(
            results=_results_from_response(raw_response),
            count=raw_response.get("count"),
        )

    async def count(self, query: Query | None = None) -> int:
        """
        Count the records matching the filter of a query.
        Async version of the method, for use in an asyncio context.
        """
        count_query: Query = {**(query or {}), "count": 1, "limit": 0}  # type: ignore[typeddict-item]
        logger.info(f"count on '{self.name}'")
        raw_response = await self._find_raw(count_query)
        logger.info(f"finished count on '{self.name}'")
        return _count_from_response(raw_response)

    async def find_one(self, query: Query | None = None) -> RecordType | None:
        """
        Return the first record matching a query, or None if there is none.
        Async version of the method, for use in an asyncio context.
        """
        one_query: Query = {**(query or {}), "limit": 1}  # type: ignore[typeddict-item]
        results = await self.find(one_query)
        if not results:
            return None
        return results[0]

    async def get(self, object_id: str) -> RecordType | None:
        raw_response = await self._api_commander.async_request(
            http_method=HttpMethod.GET,
            path=f"{self._class_path}/{object_id}",
        )
        if not raw_response:
            return None
        return decode_record(raw_response)

    async def search(
        self,
        q: str,
        *,
        skip: int = 0,
        limit: int = DEFAULT_SEARCH_LIMIT,
        order: str | None = None,
        sid: str | None = None,
    ) -> dict[str, Any]:
        """
        Run a full-text search on the records of this class.
        Async version of the method, for use in an asyncio context.
        """
        params: dict[str, Any] = {
            "q": q,
            "limit": limit,
            "skip": skip,
            "clazz": self.name,
        }
        if order is not None:
            params["order"] = order
        if sid is not None:
            params["sid"] = sid
        logger.info(f"search on '{self.name}'")
        raw_response = await self._api_commander.async_request(
            http_method=HttpMethod.GET,
            path=SEARCH_PATH,
            query_string=urlencode(params),
        )
        logger.info(f"finished search on '{self.name}'")
        return {**raw_response, "results": _results_from_response(raw_response)}

    async def find_in_keys(
        self, records: Sequence[RecordType], key: str
    ) -> list[RecordType]:
        """
        Retrieve the remote records having the same value for `key` as any
        of the provided local records.
        Async version of the method, for use in an asyncio context.

        Raises:
            LCValidationException: if no record has a value for `key`.
        """
        values = _join_key_values(records, key)
        return await self.find_all({"where": {key: in_values(values)}})

    async def create(
        self,
        record: RecordType,
        *,
        fetch_when_save: bool = False,
    ) -> dict[str, Any]:
        logger.info(f"create on '{self.name}'")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.POST,
            path=self._class_path,
            query_string=FETCH_WHEN_SAVE_PARAM if fetch_when_save else None,
            payload=encode_for_write(record),
        )
        logger.info(f"finished create on '{self.name}'")
        return response

    async def update(
        self,
        record: RecordType,
        object_id: str,
        *,
        delete_undefined: bool = False,
        fetch_when_save: bool = False,
    ) -> dict[str, Any]:
        logger.info(f"update on '{self.name}'")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.PUT,
            path=f"{self._class_path}/{object_id}",
            query_string=FETCH_WHEN_SAVE_PARAM if fetch_when_save else None,
            payload=encode_for_write(record, delete_undefined=delete_undefined),
        )
        logger.info(f"finished update on '{self.name}'")
        return response

    async def create_or_update(self, record: RecordType) -> dict[str, Any]:
        object_id = record.get(OBJECT_ID_FIELD)
        if object_id:
            return await self.update(record, object_id)
        return await self.create(record)

    async def delete(self, object_id: str) -> dict[str, Any]:
        logger.info(f"delete on '{self.name}'")
        response = await self._api_commander.async_request(
            http_method=HttpMethod.DELETE,
            path=f"{self._class_path}/{object_id}",
        )
        logger.info(f"finished delete on '{self.name}'")
        return response

    async def destory(self, object_id: str) -> dict[str, Any]:
        """Deprecated alias of `delete`."""
        _warn_misspelled_alias("destory", "delete")
        return await self.delete(object_id)

    async def submit_batch(
        self, requests: Sequence[BatchRequest]
    ) -> list[BatchItemResult]:
        """
        Send several sub-requests in a single batch call.
        Async version of the method, for use in an asyncio context.

        Returns:
            a list of BatchItemResult, aligned with the sub-requests.
        """
        if not requests:
            return []
        logger.info(f"batch of {len(requests)} sub-request(s) on '{self.name}'")
        raw_response = await self._api_commander.async_request(
            http_method=HttpMethod.POST,
            path=BATCH_PATH,
            payload=_batch_payload(requests),
        )
        logger.info(f"finished batch on '{self.name}'")
        return parse_batch_response(raw_response)

    async def batch_save(
        self,
        records: Sequence[RecordType],
        *,
        delete_undefined: bool = False,
        fetch_when_save: bool = False,
    ) -> list[BatchItemResult]:
        return await self.submit_batch(
            [
                build_save_request(
                    self.name,
                    record,
                    delete_undefined=delete_undefined,
                    fetch_when_save=fetch_when_save,
                )
                for record in records
            ]
        )

    async def batch_create(
        self, records: Sequence[RecordType]
    ) -> list[BatchItemResult]:
        return await self.submit_batch(
            [build_create_request(self.name, record) for record in records]
        )

    async def batch_update(
        self,
        records: Sequence[RecordType],
        *,
        delete_undefined: bool = False,
    ) -> list[BatchItemResult]:
        """
        Update records in a single batch call, skipping those without objectId.
        Async version of the method, for use in an asyncio context.

        Raises:
            LCValidationException: if records are given but none has an objectId.
        """
        if not records:
            return []
        return await self.submit_batch(
            [
                build_update_request(
                    self.name, record, delete_undefined=delete_undefined
                )
                for record in _records_with_object_id(records)
            ]
        )

    async def batch_delete(
        self, records: Sequence[RecordType]
    ) -> list[BatchItemResult]:
        results = await self.submit_batch(
            [build_delete_request(self.name, record) for record in records]
        )
        _log_batch_errors("batch_delete", results)
        return results

    async def batch_destory(
        self, records: Sequence[RecordType]
    ) -> list[BatchItemResult]:
        """Deprecated alias of `batch_delete`."""
        _warn_misspelled_alias("batch_destory", "batch_delete")
        return await self.batch_delete(records)

    async def _upload_reconciled(
        self, reconciled: ReconcileResult
    ) -> BatchCreateOrUpdateResult:
        result = BatchCreateOrUpdateResult(unchanged_count=len(reconciled.unchanged))
        if reconciled.updates:
            result.update_results = await self.batch_update(reconciled.updates)
        if reconciled.creates:
            result.create_results = await self.batch_create(reconciled.creates)
        return result

    async def batch_compare_and_upload(
        self,
        records: Sequence[RecordType],
        remote_records: Sequence[RecordType],
        *,
        join_key: str = OBJECT_ID_FIELD,
        check_keys: Sequence[str] = (),
    ) -> BatchCreateOrUpdateResult:
        reconciled = reconcile(records, remote_records, join_key, check_keys)
        return await self._upload_reconciled(reconciled)

    async def batch_create_or_update(
        self,
        records: Sequence[RecordType],
        join_key: str = OBJECT_ID_FIELD,
        check_keys: Sequence[str] = (),
    ) -> BatchCreateOrUpdateResult:
        """
        Synchronize local records with the class, updating the changed ones
        and creating the new ones.
        Async version of the method, for use in an asyncio context.

        Raises:
            LCValidationException: if no record has a value for `join_key`.
        """
        if not records:
            return BatchCreateOrUpdateResult()
        remote_records = await self.find_in_keys(records, join_key)
        return await self.batch_compare_and_upload(
            records,
            remote_records,
            join_key=join_key,
            check_keys=check_keys,
        )
