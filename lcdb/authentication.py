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

import hashlib
import time
from abc import ABC, abstractmethod
from typing import Any

from typing_extensions import override

from lcdb.defaults import (
    SECRETS_REDACT_CHAR,
    SECRETS_REDACT_ENDING,
    SECRETS_REDACT_ENDING_LENGTH,
)


def coerce_signer(app_key: str | RequestSigner) -> RequestSigner:
    if isinstance(app_key, RequestSigner):
        return app_key
    else:
        return AppKeySigner(app_key)


def _redact_secret(secret: str, max_length: int) -> str:
    """
    Return a shortened version of a 'secret' string (with ellipsis),
    or a fully masked string of the same length if the secret is short.
    """
    if len(secret) + SECRETS_REDACT_ENDING_LENGTH > max_length:
        return (
            secret[: max_length - SECRETS_REDACT_ENDING_LENGTH] + SECRETS_REDACT_ENDING
        )
    else:
        return SECRETS_REDACT_CHAR * len(secret)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RequestSigner(ABC):
    """
    Abstract base class for a request signer.
    The relevant method in this interface is returning a string to use
    as the value of the `X-LC-Sign` header of a request.

    A new signature is computed for each request, as signatures embed
    the current time.
    """

    @abstractmethod
    def __repr__(self) -> str: ...

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, RequestSigner):
            return repr(self) == repr(other) and type(self) is type(other)
        return False

    @abstractmethod
    def sign(self, timestamp_ms: int | None = None) -> str:
        """
        Produce the signature string for a request.

        Args:
            timestamp_ms: the timestamp to sign, in milliseconds since epoch.
                Defaults to the current time, which is what requests need.
        """
        ...


class AppKeySigner(RequestSigner):
    """
    A signer using the application key: the signature is the MD5 digest of
    the timestamp followed by the key, as `"{digest},{timestamp}"`.

    Args:
        app_key: the application key.

    Example:
        >>> signer = AppKeySigner("my-app-key")
        >>> signer.sign(1453014943466).endswith(",1453014943466")
        True
    """

    def __init__(self, app_key: str) -> None:
        self.app_key = app_key

    @override
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({_redact_secret(self.app_key, 12)})"

    @override
    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AppKeySigner):
            return type(self) is type(other) and self.app_key == other.app_key
        return False

    def _digest(self, timestamp_ms: int) -> str:
        return hashlib.md5(f"{timestamp_ms}{self.app_key}".encode()).hexdigest()

    @override
    def sign(self, timestamp_ms: int | None = None) -> str:
        _timestamp_ms = _now_ms() if timestamp_ms is None else timestamp_ms
        return f"{self._digest(_timestamp_ms)},{_timestamp_ms}"


class MasterKeySigner(AppKeySigner):
    """
    A signer using the master key, which grants unrestricted access.
    Same as AppKeySigner, with a trailing ",master" marker.

    Args:
        master_key: the master key of the application.
    """

    MASTER_SUFFIX = "master"

    def __init__(self, master_key: str) -> None:
        super().__init__(master_key)

    @override
    def sign(self, timestamp_ms: int | None = None) -> str:
        return f"{super().sign(timestamp_ms)},{self.MASTER_SUFFIX}"
