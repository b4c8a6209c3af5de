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
from typing import Protocol

from lcdb.constants import RecordType
from lcdb.defaults import MAX_PAGE_SIZE
from lcdb.query import Query

logger = logging.getLogger(__name__)


# This is for the (partialed, if necessary) functions returning one page of records.
class PageFetcher(Protocol):
    def __call__(self, query: Query) -> list[RecordType]: ...


# This is for the (partialed, if necessary) async functions returning one page.
class AsyncPageFetcher(Protocol):
    async def __call__(self, query: Query) -> list[RecordType]: ...


def _page_query(query: Query | None, skip: int, page_size: int) -> Query:
    page_query: Query = {**(query or {})}  # type: ignore[typeddict-item]
    page_query["limit"] = page_size
    page_query["skip"] = skip
    return page_query


def fetch_all_pages(
    fetch_page: PageFetcher,
    query: Query | None = None,
    *,
    page_size: int = MAX_PAGE_SIZE,
) -> list[RecordType]:
    """
    Retrieve all records matching a query by requesting pages of `page_size`
    records at increasing `skip` values, one after the other, until a page
    comes back empty or shorter than `page_size`.

    The `limit` and `skip` of the query are overridden. The query is not modified.

    Args:
        fetch_page: a callable running the query for one page.
        query: the query to run.
        page_size: the number of records per page.

    Returns:
        the list of all the records, in the order they were received.
    """
    all_records: list[RecordType] = []
    skip = 0
    while True:
        page_query = _page_query(query, skip, page_size)
        logger.debug(f"fetch_all_pages: requesting skip={skip}, limit={page_size}")
        page = fetch_page(page_query)
        if not page:
            break
        all_records.extend(page)
        if len(page) < page_size:
            break
        skip += page_size
    logger.debug(f"fetch_all_pages: {len(all_records)} record(s) retrieved")
    return all_records


async def async_fetch_all_pages(
    fetch_page: AsyncPageFetcher,
    query: Query | None = None,
    *,
    page_size: int = MAX_PAGE_SIZE,
) -> list[RecordType]:
    """
    Retrieve all records matching a query through successive pages.
    Async version of the method, for use in an asyncio context.

    Pages are requested strictly one after the other.

    Args:
        fetch_page: a coroutine function running the query for one page.
        query: the query to run.
        page_size: the number of records per page.

    Returns:
        the list of all the records, in the order they were received.
    """
    all_records: list[RecordType] = []
    skip = 0
    while True:
        page_query = _page_query(query, skip, page_size)
        logger.debug(
            f"async_fetch_all_pages: requesting skip={skip}, limit={page_size}"
        )
        page = await fetch_page(page_query)
        if not page:
            break
        all_records.extend(page)
        if len(page) < page_size:
            break
        skip += page_size
    logger.debug(f"async_fetch_all_pages: {len(all_records)} record(s) retrieved")
    return all_records
