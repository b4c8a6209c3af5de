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

from dataclasses import dataclass, field
from typing import Any

from lcdb.constants import RecordType
from lcdb.exceptions import LCErrorDescriptor, LCFaultyResponseException


def _piecewise_repr(class_name: str, pieces: list[str | None]) -> str:
    return f"{class_name}({', '.join(pc for pc in pieces if pc)})"


@dataclass
class BatchItemResult:
    """
    The outcome of one sub-request of a batch call. Exactly one of
    `success` and `error` is set.

    Batch calls are not atomic: each item must be inspected on its own.

    Attributes:
        success: the payload returned for the sub-request, e.g.
            `{"objectId": "...", "createdAt": "..."}` for a creation.
        error: the error descriptor, if the sub-request failed.
        raw_result: the item as returned by the API.
    """

    success: dict[str, Any] | None
    error: LCErrorDescriptor | None
    raw_result: dict[str, Any]

    def __repr__(self) -> str:
        return _piecewise_repr(
            self.__class__.__name__,
            [
                f"success={self.success}" if self.success is not None else None,
                f"error={self.error}" if self.error is not None else None,
            ],
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    @staticmethod
    def from_raw(raw_result: dict[str, Any]) -> BatchItemResult:
        if not isinstance(raw_result, dict):
            raise LCFaultyResponseException(
                text="Unexpected item in batch response.",
                raw_response=raw_result,
            )
        raw_error = raw_result.get("error")
        if raw_error is not None:
            return BatchItemResult(
                success=None,
                error=LCErrorDescriptor(raw_error),
                raw_result=raw_result,
            )
        return BatchItemResult(
            success=raw_result.get("success"),
            error=None,
            raw_result=raw_result,
        )


def parse_batch_response(raw_response: Any) -> list[BatchItemResult]:
    """Turn the (positionally aligned) response of a batch call into items."""
    if not isinstance(raw_response, list):
        raise LCFaultyResponseException(
            text="The batch endpoint did not return a list of results.",
            raw_response=raw_response,
        )
    return [BatchItemResult.from_raw(raw_item) for raw_item in raw_response]


@dataclass
class FindAndCountResult:
    """
    One page of records along with the total number of matching records.

    Attributes:
        results: the (decoded) records in the page.
        count: the total number of records matching the query's filter.
    """

    results: list[RecordType]
    count: int | None


@dataclass
class ReconcileResult:
    """
    The partition of local records against their remote counterparts.

    Attributes:
        updates: records with a remote counterpart that differs from them.
            Each of them has been given the `objectId` of its counterpart.
        creates: records without a remote counterpart.
        unchanged: records whose remote counterpart is identical
            on all the compared fields.
    """

    updates: list[RecordType] = field(default_factory=list)
    creates: list[RecordType] = field(default_factory=list)
    unchanged: list[RecordType] = field(default_factory=list)


@dataclass
class BatchCreateOrUpdateResult:
    """
    Class that represents the result of a batch_create_or_update operation.

    Attributes:
        update_results: the items of the batch call for the updates
            (empty if there was nothing to update).
        create_results: the items of the batch call for the creations
            (empty if there was nothing to create).
        unchanged_count: the number of records that required no write.
    """

    update_results: list[BatchItemResult] = field(default_factory=list)
    create_results: list[BatchItemResult] = field(default_factory=list)
    unchanged_count: int = 0

    def __repr__(self) -> str:
        return _piecewise_repr(
            self.__class__.__name__,
            [
                f"updated={len(self.update_results)}",
                f"created={len(self.create_results)}",
                f"unchanged={self.unchanged_count}",
            ],
        )

    @property
    def errors(self) -> list[LCErrorDescriptor]:
        return [
            item.error
            for item in [*self.update_results, *self.create_results]
            if item.error is not None
        ]
