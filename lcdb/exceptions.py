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

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass
class LCErrorDescriptor:
    """
    An object representing a single error, as returned from the API,
    with a numeric code and a text message.

    The API expresses errors as `{"code": 101, "error": "Object not found."}`,
    both as the body of a failed request and as the `error` entry of a
    batch sub-result.

    Attributes:
        code: the numeric code found in the error's "code" field.
        message: the text found in the error's "error" field.
        attributes: a dict with any further key-value pairs returned by the API.
    """

    code: int | None
    message: str | None
    attributes: dict[str, Any]

    _known_dict_fields = {"code", "error"}

    def __init__(self, error_dict: dict[str, Any] | str) -> None:
        if isinstance(error_dict, str):
            self.code = None
            self.message = error_dict
            self.attributes = {}
        else:
            self.code = error_dict.get("code")
            self.message = error_dict.get("error")
            self.attributes = {
                k: v for k, v in error_dict.items() if k not in self._known_dict_fields
            }

    def __str__(self) -> str:
        return self.summary()

    def summary(self) -> str:
        """Determine a succinct string description of this descriptor."""
        if self.code is not None:
            if self.message:
                return f"{self.message} (code {self.code})"
            return f"code {self.code}"
        return self.message or ""


def is_error_response(response: Any) -> bool:
    """
    Whether a parsed JSON response expresses an application-level error,
    i.e. carries both a numeric `code` and a string `error`.
    """
    return (
        isinstance(response, dict)
        and isinstance(response.get("code"), int)
        and not isinstance(response.get("code"), bool)
        and isinstance(response.get("error"), str)
    )


class LCException(Exception):
    """
    Any exception occurred while issuing requests to the API
    and specific to it, such as:
      - the API returns a response with an error,
      - a local precondition on the arguments of a method is not met,
    but not, for instance,
      - a network error while sending an HTTP request to the API.
    """

    pass


@dataclass
class LCResponseException(LCException):
    """
    The API returned a well-formed response reporting an error
    in the form `{"code": ..., "error": ...}`.

    Attributes:
        text: the error message as returned by the server.
        code: the numeric error code, if available.
        raw_response: the full response from the API.
        error_descriptor: the structured LCErrorDescriptor for this error.
    """

    text: str | None
    code: int | None
    raw_response: Any
    error_descriptor: LCErrorDescriptor

    def __init__(
        self,
        text: str | None,
        *,
        raw_response: Any,
        error_descriptor: LCErrorDescriptor,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.code = error_descriptor.code
        self.raw_response = raw_response
        self.error_descriptor = error_descriptor

    def __str__(self) -> str:
        return self.text or ""

    @staticmethod
    def from_response(raw_response: dict[str, Any]) -> LCResponseException:
        """Parse a raw `{code, error}` response from the API into this exception."""

        error_descriptor = LCErrorDescriptor(raw_response)
        return LCResponseException(
            error_descriptor.message,
            raw_response=raw_response,
            error_descriptor=error_descriptor,
        )


@dataclass
class LCHttpException(LCException, httpx.HTTPStatusError):
    """
    A request to the API resulted in an HTTP 4xx or 5xx response whose body
    does not describe an application-level error.

    This still is (a subclass of) `httpx.HTTPStatusError`.

    Attributes:
        text: a text message about the exception.
    """

    text: str | None

    def __init__(
        self,
        text: str | None,
        *,
        httpx_error: httpx.HTTPStatusError,
    ) -> None:
        LCException.__init__(self, text)
        httpx.HTTPStatusError.__init__(
            self,
            message=str(httpx_error),
            request=httpx_error.request,
            response=httpx_error.response,
        )
        self.text = text
        self.httpx_error = httpx_error

    def __str__(self) -> str:
        return self.text or str(self.httpx_error)

    @classmethod
    def from_httpx_error(cls, httpx_error: httpx.HTTPStatusError) -> LCHttpException:
        """Parse a httpx status error into this exception."""
        return cls(text=str(httpx_error), httpx_error=httpx_error)


@dataclass
class LCFaultyResponseException(LCException):
    """
    The API response is malformed in that it cannot be parsed as JSON,
    or it lacks expected fields.

    Attributes:
        text: a text message about the exception.
        raw_response: the response returned by the API, as far as it is known.
    """

    text: str
    raw_response: Any

    def __init__(self, text: str, raw_response: Any) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response


@dataclass
class LCTimeoutException(LCException):
    """
    A request to the API timed out.

    Attributes:
        text: a textual description of the error
        timeout_type: this denotes the phase of the HTTP request when the event
            occurred ("connect", "read", "write", "pool") or "generic".
        endpoint: the URL that the request was targeting, if known.
        raw_payload: the associated payload (as a string), if any.
    """

    text: str
    timeout_type: str
    endpoint: str | None
    raw_payload: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        endpoint: str | None,
        raw_payload: str | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.timeout_type = timeout_type
        self.endpoint = endpoint
        self.raw_payload = raw_payload


@dataclass
class LCValidationException(LCException, ValueError):
    """
    A local precondition of an operation is not satisfied, hence the
    operation is not attempted (no request is issued).

    Attributes:
        text: a text message about the exception.
    """

    text: str

    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.text = text


def to_timeout_exception(
    httpx_timeout: httpx.TimeoutException,
    timeout_ms: int | None = None,
) -> LCTimeoutException:
    text: str
    text_0 = str(httpx_timeout) or "timed out"
    if timeout_ms:
        text = f"{text_0} (timeout honoured: {timeout_ms} ms)"
    else:
        text = text_0
    if isinstance(httpx_timeout, httpx.ConnectTimeout):
        timeout_type = "connect"
    elif isinstance(httpx_timeout, httpx.ReadTimeout):
        timeout_type = "read"
    elif isinstance(httpx_timeout, httpx.WriteTimeout):
        timeout_type = "write"
    elif isinstance(httpx_timeout, httpx.PoolTimeout):
        timeout_type = "pool"
    else:
        timeout_type = "generic"
    endpoint: str | None = None
    raw_payload: str | None = None
    try:
        request = httpx_timeout.request
    except RuntimeError:
        # the exception was raised without an associated request
        request = None
    if request is not None:
        endpoint = str(request.url)
        if isinstance(request.content, bytes):
            raw_payload = request.content.decode()
    return LCTimeoutException(
        text=text,
        timeout_type=timeout_type,
        endpoint=endpoint,
        raw_payload=raw_payload,
    )


__all__ = [
    "LCErrorDescriptor",
    "LCException",
    "LCResponseException",
    "LCHttpException",
    "LCFaultyResponseException",
    "LCTimeoutException",
    "LCValidationException",
]
