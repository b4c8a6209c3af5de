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
from types import TracebackType
from typing import Any

import httpx

from lcdb.api_options import APIOptions, defaultAPIOptions
from lcdb.authentication import RequestSigner
from lcdb.defaults import (
    API_VERSION_PATH,
    APP_ID_HEADER,
    DEFAULT_CONTENT_TYPE,
    HEADER_REDACT_PLACEHOLDER,
    SIGN_HEADER,
)
from lcdb.exceptions import (
    LCFaultyResponseException,
    LCHttpException,
    LCResponseException,
    is_error_response,
    to_timeout_exception,
)
from lcdb.request_tools import (
    HttpMethod,
    compose_user_agent,
    log_httpx_request,
    log_httpx_response,
    to_httpx_timeout,
)
from lcdb.transform_payload import normalize_payload_value

logger = logging.getLogger(__name__)


class APICommander:
    """
    The object in charge of issuing (signed) HTTP requests to the API
    and turning the responses into JSON, or into exceptions.

    Args:
        server_url: the base URL of the API server, e.g.
            "https://abcd1234.lc-cn-n1-shared.com".
        app_id: the application ID, sent as the `X-LC-Id` header.
        signer: the RequestSigner producing the `X-LC-Sign` header.
        api_options: the APIOptions for timeouts, callers and log redaction.
        client: an httpx.Client to use for sync requests. Defaults to
            a client shared by all instances.
        async_client: an httpx.AsyncClient to use for async requests.
            Defaults to a new client owned by this instance.
    """

    client = httpx.Client()

    def __init__(
        self,
        server_url: str,
        app_id: str,
        signer: RequestSigner,
        api_options: APIOptions = defaultAPIOptions,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        if client is not None:
            self.client = client
        self.async_client = async_client or httpx.AsyncClient()
        self.server_url = server_url.rstrip("/")
        self.app_id = app_id
        self.signer = signer
        self.api_options = api_options
        self.base_url = f"{self.server_url}/{API_VERSION_PATH}"
        self.user_agent = compose_user_agent(self.api_options.callers)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(base_url="{self.base_url}")'

    async def __aenter__(self) -> APICommander:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.async_client.aclose()

    def _request_headers(self) -> dict[str, str]:
        # signatures embed the current time: a fresh one for each request
        return {
            APP_ID_HEADER: self.app_id,
            SIGN_HEADER: self.signer.sign(),
            "Content-Type": DEFAULT_CONTENT_TYPE,
            "User-Agent": self.user_agent,
        }

    def _loggable_headers(self, headers: dict[str, str]) -> dict[str, str]:
        return {
            k: v
            if k not in self.api_options.redacted_header_names
            else HEADER_REDACT_PLACEHOLDER
            for k, v in headers.items()
        }

    def _compose_request_url(self, path: str, query_string: str | None) -> str:
        url = "/".join([self.base_url, path.lstrip("/")])
        if query_string:
            return f"{url}?{query_string}"
        return url

    def _encode_payload(self, payload: Any) -> bytes | None:
        if payload is not None:
            return json.dumps(
                normalize_payload_value(payload),
                allow_nan=False,
                ensure_ascii=False,
                separators=(",", ":"),
            ).encode()
        else:
            return None

    def _timeout(self) -> httpx.Timeout | Any:
        timeout = to_httpx_timeout(self.api_options.timeout_ms)
        return timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT

    def _raw_response_to_json(self, raw_response: httpx.Response) -> Any:
        # try to process the httpx raw response into a JSON or throw a failure
        try:
            response_json = raw_response.json()
        except ValueError:
            # json() parsing has failed (e.g., empty body)
            if raw_response.is_error:
                raise LCHttpException.from_httpx_error(
                    httpx.HTTPStatusError(
                        f"HTTP {raw_response.status_code} from {raw_response.url}",
                        request=raw_response.request,
                        response=raw_response,
                    )
                )
            raise LCFaultyResponseException(
                text="Unparseable response from the API.",
                raw_response={"raw_response": raw_response.text},
            )

        if is_error_response(response_json):
            logger.warning(f"APICommander about to raise from: {response_json}")
            raise LCResponseException.from_response(response_json)

        try:
            raw_response.raise_for_status()
        except httpx.HTTPStatusError as http_exc:
            raise LCHttpException.from_httpx_error(http_exc)

        return response_json

    def raw_request(
        self,
        *,
        http_method: str = HttpMethod.GET,
        path: str = "",
        query_string: str | None = None,
        payload: Any = None,
    ) -> httpx.Response:
        request_url = self._compose_request_url(path, query_string)
        request_headers = self._request_headers()
        log_httpx_request(
            http_method=http_method,
            full_url=request_url,
            redacted_request_headers=self._loggable_headers(request_headers),
            payload=payload,
        )
        encoded_payload = self._encode_payload(payload)

        try:
            raw_response = self.client.request(
                method=http_method,
                url=request_url,
                content=encoded_payload,
                timeout=self._timeout(),
                headers=request_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            raise to_timeout_exception(timeout_exc, self.api_options.timeout_ms)

        log_httpx_response(response=raw_response)
        return raw_response

    async def async_raw_request(
        self,
        *,
        http_method: str = HttpMethod.GET,
        path: str = "",
        query_string: str | None = None,
        payload: Any = None,
    ) -> httpx.Response:
        request_url = self._compose_request_url(path, query_string)
        request_headers = self._request_headers()
        log_httpx_request(
            http_method=http_method,
            full_url=request_url,
            redacted_request_headers=self._loggable_headers(request_headers),
            payload=payload,
        )
        encoded_payload = self._encode_payload(payload)

        try:
            raw_response = await self.async_client.request(
                method=http_method,
                url=request_url,
                content=encoded_payload,
                timeout=self._timeout(),
                headers=request_headers,
            )
        except httpx.TimeoutException as timeout_exc:
            raise to_timeout_exception(timeout_exc, self.api_options.timeout_ms)

        log_httpx_response(response=raw_response)
        return raw_response

    def request(
        self,
        *,
        http_method: str = HttpMethod.GET,
        path: str = "",
        query_string: str | None = None,
        payload: Any = None,
    ) -> Any:
        raw_response = self.raw_request(
            http_method=http_method,
            path=path,
            query_string=query_string,
            payload=payload,
        )
        return self._raw_response_to_json(raw_response)

    async def async_request(
        self,
        *,
        http_method: str = HttpMethod.GET,
        path: str = "",
        query_string: str | None = None,
        payload: Any = None,
    ) -> Any:
        raw_response = await self.async_raw_request(
            http_method=http_method,
            path=path,
            query_string=query_string,
            payload=payload,
        )
        return self._raw_response_to_json(raw_response)
