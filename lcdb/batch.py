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
from typing import Any, Dict, Iterable, Sequence, TypedDict

from lcdb.constants import RecordType, TypeTag
from lcdb.defaults import FETCH_WHEN_SAVE_PARAM, OBJECT_ID_FIELD, RESERVED_FIELDS
from lcdb.query import class_path
from lcdb.request_tools import HttpMethod
from lcdb.results import ReconcileResult
from lcdb.transform_payload import (
    encode_for_write,
    is_tagged_value,
    normalize_payload_value,
)

logger = logging.getLogger(__name__)

_MISSING = object()


class BatchRequest(TypedDict, total=False):
    """
    One sub-request of a batch call.

    Attributes:
        method: the HTTP verb, one of "GET", "POST", "PUT", "DELETE".
        path: the path of the resource, API version included,
            e.g. "/1.1/classes/Book/558e20cbe4b060308e3eb36c".
        body: the (encoded) record, for writes.
        params: the query parameters, for reads.
    """

    method: str
    path: str
    body: Dict[str, Any]
    params: Dict[str, Any]


def _with_fetch_when_save(path: str, fetch_when_save: bool) -> str:
    return f"{path}?{FETCH_WHEN_SAVE_PARAM}" if fetch_when_save else path


def build_create_request(
    class_name: str,
    record: RecordType,
    *,
    fetch_when_save: bool = False,
) -> BatchRequest:
    return {
        "method": HttpMethod.POST,
        "path": _with_fetch_when_save(class_path(class_name), fetch_when_save),
        "body": encode_for_write(record),
    }


def build_update_request(
    class_name: str,
    record: RecordType,
    *,
    delete_undefined: bool = False,
    fetch_when_save: bool = False,
) -> BatchRequest:
    path = f"{class_path(class_name)}/{record[OBJECT_ID_FIELD]}"
    return {
        "method": HttpMethod.PUT,
        "path": _with_fetch_when_save(path, fetch_when_save),
        "body": encode_for_write(record, delete_undefined=delete_undefined),
    }


def build_delete_request(class_name: str, record: RecordType) -> BatchRequest:
    return {
        "method": HttpMethod.DELETE,
        "path": f"{class_path(class_name)}/{record.get(OBJECT_ID_FIELD)}",
    }


def build_save_request(
    class_name: str,
    record: RecordType,
    *,
    delete_undefined: bool = False,
    fetch_when_save: bool = False,
) -> BatchRequest:
    """An update if the record has an objectId, a creation otherwise."""
    if record.get(OBJECT_ID_FIELD):
        return build_update_request(
            class_name,
            record,
            delete_undefined=delete_undefined,
            fetch_when_save=fetch_when_save,
        )
    save_request = build_create_request(
        class_name, record, fetch_when_save=fetch_when_save
    )
    save_request["body"] = encode_for_write(record, delete_undefined=delete_undefined)
    return save_request


def distinct_values(records: Iterable[RecordType], key: str) -> list[Any]:
    """
    The distinct values found for `key` across the records, in order of first
    appearance. Records without the key, or with a None value, are ignored.
    """
    values: list[Any] = []
    for record in records:
        value = record.get(key)
        if value is None:
            continue
        if value not in values:
            values.append(value)
    return values


def _is_tagged_date(value: Any) -> bool:
    return is_tagged_value(value) and value["__type"] == TypeTag.DATE


def _same_wire_value(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            _same_wire_value(left[key], right[key]) for key in left
        )
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(
            _same_wire_value(left_item, right_item)
            for left_item, right_item in zip(left, right)
        )
    # dates in the top-level fields of query results are decoded to ISO strings
    if _is_tagged_date(left) and isinstance(right, str):
        return left.get("iso") == right
    if isinstance(left, str) and _is_tagged_date(right):
        return left == right.get("iso")
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    return left == right


def values_match(local_value: Any, remote_value: Any) -> bool:
    """
    Whether a local field value is the same as the one in a remote record.

    The local value is taken in its wire form (GeoPoint, Pointer and dates
    as the API returns them). Booleans never match numbers, e.g. `True`
    and `1` differ.
    """
    return _same_wire_value(normalize_payload_value(local_value), remote_value)


def _comparison_keys(record: RecordType, check_keys: Sequence[str]) -> list[str]:
    if check_keys:
        return list(check_keys)
    return [key for key in record if key not in RESERVED_FIELDS]


def _find_counterpart(
    record: RecordType,
    remote_records: Sequence[RecordType],
    join_key: str,
) -> RecordType | None:
    join_value = record.get(join_key, _MISSING)
    if join_value is _MISSING:
        return None
    for remote_record in remote_records:
        if values_match(join_value, remote_record.get(join_key, _MISSING)):
            return remote_record
    return None


def reconcile(
    records: Iterable[RecordType],
    remote_records: Sequence[RecordType],
    join_key: str = OBJECT_ID_FIELD,
    check_keys: Sequence[str] = (),
) -> ReconcileResult:
    """
    Partition local records into creations, updates and no-ops by matching them
    with the remote records sharing the same value for `join_key`.

    For a matched record, the compared fields are `check_keys` or, if empty,
    all fields of the local record except objectId/createdAt/updatedAt.
    If all of them are equal to the remote ones (see `values_match`), the record is
    unchanged; otherwise it receives the remote objectId (the local dict is
    modified in place) and is to be updated.

    When several remote records share a join value, the first one wins.
    A matched record with no field to compare is always an update.
    """
    result = ReconcileResult()
    for record in records:
        counterpart = _find_counterpart(record, remote_records, join_key)
        if counterpart is None:
            result.creates.append(record)
            continue
        keys = _comparison_keys(record, check_keys)
        if keys and all(
            values_match(record.get(key, _MISSING), counterpart.get(key, _MISSING))
            for key in keys
        ):
            result.unchanged.append(record)
            continue
        record[OBJECT_ID_FIELD] = counterpart.get(OBJECT_ID_FIELD)
        result.updates.append(record)
    logger.debug(
        f"reconcile: {len(result.updates)} update(s), "
        f"{len(result.creates)} creation(s), {len(result.unchanged)} unchanged"
    )
    return result
