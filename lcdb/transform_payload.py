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

import datetime
import json
from typing import Any, Iterable
from urllib.parse import quote

from lcdb.constants import RecordType, TypeTag
from lcdb.data_types import GeoPoint, Pointer, UnsetType
from lcdb.defaults import RESERVED_FIELDS

# the characters left alone by ECMAScript's encodeURIComponent, besides alphanumerics
QUERY_STRING_SAFE_CHARS = "-_.!~*'()"


def delete_operation() -> dict[str, str]:
    """The marker instructing the server to unset a field."""
    return {"__op": "Delete"}


def to_iso_date_string(date_value: datetime.date | datetime.datetime) -> str:
    """
    Format a date/datetime as the API expects it, e.g. "2015-06-29T08:30:00.000Z":
    UTC, millisecond precision.

    Naive datetimes are taken to be in UTC already; plain dates
    stand for midnight UTC of that day.
    """
    if isinstance(date_value, datetime.datetime):
        if date_value.tzinfo is None:
            dt = date_value
        else:
            dt = date_value.astimezone(datetime.timezone.utc)
    else:
        dt = datetime.datetime(date_value.year, date_value.month, date_value.day)
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
        f".{dt.microsecond // 1000:03d}Z"
    )


def convert_to_tagged_date(
    date_value: datetime.date | datetime.datetime,
) -> dict[str, str]:
    return {"__type": TypeTag.DATE, "iso": to_iso_date_string(date_value)}


def is_tagged_value(value: Any) -> bool:
    return isinstance(value, dict) and value.get("__type") in TypeTag.values


def normalize_payload_value(value: Any) -> Any:
    """
    Recursively turn native values into their wire representation:
    dates become tagged dates, GeoPoint/Pointer objects become tagged dicts.
    """
    if isinstance(value, dict):
        return {k: normalize_payload_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [normalize_payload_value(item) for item in value]
    elif isinstance(value, (datetime.datetime, datetime.date)):
        return convert_to_tagged_date(value)
    elif isinstance(value, (GeoPoint, Pointer)):
        return value.to_dict()
    else:
        return value


def encode_for_write(
    record: RecordType,
    delete_undefined: bool = False,
) -> RecordType:
    """
    Prepare a record to be used as the body of a create/update request.

    The server-managed fields (objectId, createdAt, updatedAt) are dropped,
    and values are normalized to their wire representation.

    Args:
        record: the record to encode. It is not modified.
        delete_undefined: if True, fields whose value is `None` or `UNSET`
            are replaced by the delete operation, which makes the server
            unset the field. If False, `UNSET` fields are simply left out
            (hence untouched server-side) and `None` is written as null.

    Returns:
        a new dictionary, ready to be JSON-encoded.
    """
    encoded: RecordType = {}
    for key, value in record.items():
        if key in RESERVED_FIELDS:
            continue
        if value is None or isinstance(value, UnsetType):
            if delete_undefined:
                encoded[key] = delete_operation()
                continue
            if isinstance(value, UnsetType):
                continue
        encoded[key] = normalize_payload_value(value)
    return encoded


def decode_record(record: RecordType) -> RecordType:
    decoded: RecordType = {}
    for key, value in record.items():
        if is_tagged_value(value) and value["__type"] == TypeTag.DATE:
            decoded[key] = value.get("iso")
        else:
            # Bytes, Pointer, File and GeoPoint values are kept in wire form
            decoded[key] = value
    return decoded


def decode_results(records: Iterable[RecordType]) -> list[RecordType]:
    """
    Process the records just returned from the API.

    Tagged dates (`{"__type": "Date", "iso": ...}`) in the top-level fields
    are replaced by their ISO string. All other tagged values are returned
    as they are.
    """
    return [decode_record(record) for record in records]


def serialize_for_query_string(value: Any) -> str:
    """
    Render a value for use in a URL query string.

    Structured values (dicts, lists and the rich value types) are JSON-encoded
    and then percent-encoded; scalars are stringified as they are.
    """
    if isinstance(
        value,
        (dict, list, tuple, datetime.date, datetime.datetime, GeoPoint, Pointer),
    ):
        json_string = json.dumps(
            normalize_payload_value(value),
            allow_nan=False,
            ensure_ascii=False,
            separators=(",", ":"),
        )
        return quote(json_string, safe=QUERY_STRING_SAFE_CHARS)
    elif isinstance(value, bool):
        return "true" if value else "false"
    else:
        return str(value)
