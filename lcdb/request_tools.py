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
from typing import Any, Sequence

import httpx

from lcdb import __version__
from lcdb.constants import CallerType

logger = logging.getLogger(__name__)

package_name = __name__.split(".")[0]


def compose_user_agent(callers: Sequence[CallerType]) -> str:
    """
    Build the User-Agent header value: one `name/version` (or bare `name`)
    token per caller, followed by the token for this library.
    """
    tokens: list[str] = []
    for caller_name, caller_version in [*callers, (package_name, __version__)]:
        if not caller_name:
            continue
        tokens.append(f"{caller_name}/{caller_version}" if caller_version else caller_name)
    return " ".join(tokens)


def log_httpx_request(
    http_method: str,
    full_url: str,
    redacted_request_headers: dict[str, str],
    payload: Any,
) -> None:
    """
    Log the details of an HTTP request for debugging purposes.

    Args:
        http_method: the HTTP verb of the request (e.g. "POST").
        full_url: the URL of the request, query string included.
        redacted_request_headers: caution, as these will be logged as they are.
        payload: The payload sent with the request, if any.
    """
    logger.debug(f"Request URL: {http_method} {full_url}")
    if redacted_request_headers:
        logger.debug(f"Request headers: {redacted_request_headers}")
    if payload is not None:
        logger.debug(f"Request payload: {payload}")


def log_httpx_response(response: httpx.Response) -> None:
    """
    Log the details of an httpx.Response.

    Args:
        response: the httpx.Response object to log.
    """
    logger.debug(f"Response status code: {response.status_code}")
    logger.debug(f"Response headers: {response.headers}")
    logger.debug(f"Response text: {response.text}")


class HttpMethod:
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


def to_httpx_timeout(timeout_ms: int | None) -> httpx.Timeout | None:
    if timeout_ms is None:
        return None
    return httpx.Timeout(timeout_ms / 1000.0)
