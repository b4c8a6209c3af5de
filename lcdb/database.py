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
from types import TracebackType
from typing import Any, Sequence

import httpx

from lcdb.api_commander import APICommander
from lcdb.api_options import APIOptions, defaultAPIOptions
from lcdb.authentication import RequestSigner, coerce_signer
from lcdb.batch import BatchRequest
from lcdb.collection import AsyncCollection, Collection
from lcdb.constants import RecordType
from lcdb.defaults import BATCH_PATH, FILES_CLASS_NAME
from lcdb.query import Query
from lcdb.request_tools import HttpMethod
from lcdb.results import BatchItemResult, parse_batch_response

logger = logging.getLogger(__name__)


class Database:
    """
    A handle to the data of a backend application, to get collections from.
    This class has a synchronous interface.

    Args:
        app_id: the ID of the application.
        app_key: the application key, or a RequestSigner such as
            `MasterKeySigner("...")`. A string is used as the application key.
        server_url: the base URL of the API server of the application.
        api_options: an APIOptions object for the timeouts and other settings.
        client: an httpx.Client to issue the requests with. Defaults to
            a client shared across instances.
        async_client: an httpx.AsyncClient for the async objects spawned
            through `to_async`.

    Example:
        >>> from lcdb import Database
        >>> database = Database(
        ...     "my-app-id",
        ...     "my-app-key",
        ...     "https://abcd1234.lc-cn-n1-shared.com",
        ... )
        >>> database.get_collection("Book").count()
        42
    """

    def __init__(
        self,
        app_id: str,
        app_key: str | RequestSigner,
        server_url: str,
        *,
        api_options: APIOptions | None = None,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.app_id = app_id
        self.signer = coerce_signer(app_key)
        self.server_url = server_url.rstrip("/")
        self.api_options = defaultAPIOptions.with_override(api_options)
        self._client = client
        self._async_client = async_client
        self._api_commander = APICommander(
            server_url=self.server_url,
            app_id=self.app_id,
            signer=self.signer,
            api_options=self.api_options,
            client=client,
        )

    def __getitem__(self, collection_name: str) -> Collection:
        return self.get_collection(collection_name)

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(server_url="{self.server_url}", '
            f'app_id="{self.app_id}", api_options={self.api_options})'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Database):
            return all(
                [
                    self.server_url == other.server_url,
                    self.app_id == other.app_id,
                    self.signer == other.signer,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def to_async(self) -> AsyncDatabase:
        """
        Create an AsyncDatabase from this one, with the same connection details.

        Returns:
            the new copy, an AsyncDatabase instance.

        Example:
            >>> async_database = database.to_async()
            >>> asyncio.run(async_database.get_collection("Book").count())
            42
        """
        return AsyncDatabase(
            self.app_id,
            self.signer,
            self.server_url,
            api_options=self.api_options,
            client=self._client,
            async_client=self._async_client,
        )

    def get_collection(self, name: str) -> Collection:
        """
        Spawn a Collection object for the class with the given name.
        No request is made: the class is not checked for existence.

        Args:
            name: the name of the class.

        Returns:
            a Collection instance.
        """
        return Collection(self, name)

    def files(self, query: Query | None = None) -> list[RecordType]:
        """
        List the file records stored by the application (the `files` class).

        Args:
            query: an optional Query dictionary to filter, sort and page them.

        Returns:
            one page of file records, as `Collection.find` returns it.
        """
        return self.get_collection(FILES_CLASS_NAME).find(query)

    def submit_batch(self, requests: Sequence[BatchRequest]) -> list[BatchItemResult]:
        """
        Send sub-requests, possibly targeting different classes, in a single
        batch call. See `Collection.submit_batch`.
        """
        if not requests:
            return []
        logger.info(f"batch of {len(requests)} sub-request(s)")
        raw_response = self._api_commander.request(
            http_method=HttpMethod.POST,
            path=BATCH_PATH,
            payload={"requests": list(requests)},
        )
        logger.info("finished batch")
        return parse_batch_response(raw_response)


class AsyncDatabase:
    """
    A handle to the data of a backend application, to get collections from.
    This class has an asynchronous interface for use with asyncio.

    Args:
        app_id: the ID of the application.
        app_key: the application key, or a RequestSigner.
        server_url: the base URL of the API server of the application.
        api_options: an APIOptions object for the timeouts and other settings.
        client: an httpx.Client, used by the sync objects spawned through `to_sync`.
        async_client: an httpx.AsyncClient to issue the requests with.
            Defaults to a new client, closed when exiting the async context.

    Example:
        >>> from lcdb import AsyncDatabase
        >>> async with AsyncDatabase("my-app-id", "my-app-key", "https://...") as db:
        ...     await db.get_collection("Book").find_one()
        {'objectId': '558e20cbe4b060308e3eb36c', ...}
    """

    def __init__(
        self,
        app_id: str,
        app_key: str | RequestSigner,
        server_url: str,
        *,
        api_options: APIOptions | None = None,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.app_id = app_id
        self.signer = coerce_signer(app_key)
        self.server_url = server_url.rstrip("/")
        self.api_options = defaultAPIOptions.with_override(api_options)
        self._client = client
        self._async_client = async_client
        self._api_commander = APICommander(
            server_url=self.server_url,
            app_id=self.app_id,
            signer=self.signer,
            api_options=self.api_options,
            client=client,
            async_client=async_client,
        )

    def __getitem__(self, collection_name: str) -> AsyncCollection:
        return self.get_collection(collection_name)

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(server_url="{self.server_url}", '
            f'app_id="{self.app_id}", api_options={self.api_options})'
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncDatabase):
            return all(
                [
                    self.server_url == other.server_url,
                    self.app_id == other.app_id,
                    self.signer == other.signer,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    async def __aenter__(self) -> AsyncDatabase:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self._api_commander.__aexit__(exc_type, exc_value, traceback)

    def to_sync(self) -> Database:
        """
        Create a Database from this one, with the same connection details.

        Returns:
            the new copy, a Database instance.
        """
        return Database(
            self.app_id,
            self.signer,
            self.server_url,
            api_options=self.api_options,
            client=self._client,
            async_client=self._async_client,
        )

    def get_collection(self, name: str) -> AsyncCollection:
        """
        Spawn an AsyncCollection object for the class with the given name.
        No request is made.
        """
        return AsyncCollection(self, name)

    async def files(self, query: Query | None = None) -> list[RecordType]:
        """
        List the file records stored by the application (the `files` class).
        Async version of the method, for use in an asyncio context.
        """
        return await self.get_collection(FILES_CLASS_NAME).find(query)

    async def submit_batch(
        self, requests: Sequence[BatchRequest]
    ) -> list[BatchItemResult]:
        """
        Send sub-requests in a single batch call.
        Async version of the method, for use in an asyncio context.
        """
        if not requests:
            return []
        logger.info(f"batch of {len(requests)} sub-request(s)")
        raw_response = await self._api_commander.async_request(
            http_method=HttpMethod.POST,
            path=BATCH_PATH,
            payload={"requests": list(requests)},
        )
        logger.info("finished batch")
        return parse_batch_response(raw_response)
