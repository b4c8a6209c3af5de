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

"""
The "where" clause of queries.

A filter is a plain dictionary mapping field names to either a value
(equality), or a condition dictionary of operators, e.g.:

    {
        "title": {"$regex": "^WTO.*", "$options": "i"},
        "upvotes": {"$in": [1, 3, 5]},
        "$or": [{"score": {"$gt": 2}}, {"score": {"$lt": -2}}],
    }

This module classifies the operators, checks and normalizes filters before
they are sent, and offers a few helpers to build the less obvious conditions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from lcdb.constants import ConditionType, FilterType, TypeTag
from lcdb.data_types import GeoPoint, Pointer
from lcdb.exceptions import LCValidationException
from lcdb.transform_payload import normalize_payload_value

AND_OPERATOR = "$and"
OR_OPERATOR = "$or"
LOGICAL_OPERATORS = (AND_OPERATOR, OR_OPERATOR)

REGEX_ALLOWED_OPTIONS = set("imxs")


class OperatorCategory(Enum):
    """The families of operators admitted in a condition."""

    COMPARISON = "comparison"
    SET = "set"
    EXISTENCE = "existence"
    PATTERN = "pattern"
    FIELD_REFERENCE = "field_reference"
    SUB_QUERY = "sub_query"
    POINTER = "pointer"
    GEO = "geo"
    EXTENSION = "extension"


OPERATOR_CATEGORIES: dict[str, OperatorCategory] = {
    "$ne": OperatorCategory.COMPARISON,
    "$lt": OperatorCategory.COMPARISON,
    "$lte": OperatorCategory.COMPARISON,
    "$gt": OperatorCategory.COMPARISON,
    "$gte": OperatorCategory.COMPARISON,
    "$in": OperatorCategory.SET,
    "$nin": OperatorCategory.SET,
    "$all": OperatorCategory.SET,
    "$size": OperatorCategory.SET,
    "$exists": OperatorCategory.EXISTENCE,
    "$regex": OperatorCategory.PATTERN,
    "$options": OperatorCategory.PATTERN,
    "$select": OperatorCategory.FIELD_REFERENCE,
    "$dontSelect": OperatorCategory.FIELD_REFERENCE,
    "$inQuery": OperatorCategory.SUB_QUERY,
    "$notInQuery": OperatorCategory.SUB_QUERY,
    "__type": OperatorCategory.POINTER,
    "className": OperatorCategory.POINTER,
    "objectId": OperatorCategory.POINTER,
    "$nearSphere": OperatorCategory.GEO,
    "$maxDistanceInMiles": OperatorCategory.GEO,
    "$maxDistanceInKilometers": OperatorCategory.GEO,
    "$maxDistanceInRadians": OperatorCategory.GEO,
    "$within": OperatorCategory.GEO,
}


def operator_category(operator: str) -> OperatorCategory:
    """
    Return the category of an operator. Unknown operators belong to the
    EXTENSION category and are passed to the API untouched.
    """
    return OPERATOR_CATEGORIES.get(operator, OperatorCategory.EXTENSION)


def is_condition(value: Any) -> bool:
    """
    Whether the value found for a field in a filter is a condition (as opposed
    to an embedded object to match by equality).
    """
    if isinstance(value, Pointer):
        return True
    if not isinstance(value, dict):
        return False
    if value.get("__type") == TypeTag.POINTER:
        return True
    return any(isinstance(key, str) and key.startswith("$") for key in value)


def split_condition(condition: ConditionType) -> dict[OperatorCategory, ConditionType]:
    """Group the operators of a condition by their category."""
    grouped: dict[OperatorCategory, ConditionType] = {}
    for operator, operand in condition.items():
        grouped.setdefault(operator_category(operator), {})[operator] = operand
    return grouped


def _as_list(operator: str, operand: Any) -> list[Any]:
    if isinstance(operand, (list, tuple, set, frozenset)):
        return [normalize_payload_value(item) for item in operand]
    raise LCValidationException(
        f"Operator '{operator}' requires a list of values, got {operand!r}."
    )


def _normalize_sub_query(operator: str, operand: Any) -> dict[str, Any]:
    if not isinstance(operand, dict) or not isinstance(operand.get("className"), str):
        raise LCValidationException(
            f"Operator '{operator}' requires a 'className' and a 'where' filter."
        )
    return {
        **operand,
        "where": normalize_filter(operand.get("where") or {}),
    }


def _normalize_field_reference(operator: str, operand: Any) -> dict[str, Any]:
    if (
        not isinstance(operand, dict)
        or not isinstance(operand.get("key"), str)
        or not isinstance(operand.get("query"), dict)
    ):
        raise LCValidationException(
            f"Operator '{operator}' requires a 'key' and a 'query' sub-query."
        )
    return {
        **operand,
        "query": _normalize_sub_query(operator, operand["query"]),
    }


def normalize_condition(condition: ConditionType | Pointer) -> ConditionType:
    """
    Check the operands of a condition and turn them into their wire form.

    Raises:
        LCValidationException: if an operand has the wrong shape.
    """
    if isinstance(condition, Pointer):
        return condition.to_dict()
    normalized: ConditionType = {}
    for operator, operand in condition.items():
        category = operator_category(operator)
        if category == OperatorCategory.SET:
            if operator == "$size":
                if not isinstance(operand, int) or isinstance(operand, bool):
                    raise LCValidationException(
                        f"Operator '$size' requires an integer, got {operand!r}."
                    )
                normalized[operator] = operand
            else:
                normalized[operator] = _as_list(operator, operand)
        elif category == OperatorCategory.EXISTENCE:
            if not isinstance(operand, bool):
                raise LCValidationException(
                    f"Operator '$exists' requires a boolean, got {operand!r}."
                )
            normalized[operator] = operand
        elif category == OperatorCategory.PATTERN:
            if not isinstance(operand, str):
                raise LCValidationException(
                    f"Operator '{operator}' requires a string, got {operand!r}."
                )
            if operator == "$options" and not set(operand) <= REGEX_ALLOWED_OPTIONS:
                raise LCValidationException(
                    f"Unsupported regex options '{operand}' (allowed: imxs)."
                )
            normalized[operator] = operand
        elif category == OperatorCategory.SUB_QUERY:
            normalized[operator] = _normalize_sub_query(operator, operand)
        elif category == OperatorCategory.FIELD_REFERENCE:
            normalized[operator] = _normalize_field_reference(operator, operand)
        else:
            normalized[operator] = normalize_payload_value(operand)
    if "$options" in normalized and "$regex" not in normalized:
        raise LCValidationException("Operator '$options' requires '$regex'.")
    return normalized


def normalize_filter(where: FilterType) -> FilterType:
    """
    Check a filter recursively and return its wire form, with all rich values
    (dates, GeoPoint, Pointer) converted and the nested filters of `$and`,
    `$or` and sub-queries normalized in turn. The input is not modified.

    Raises:
        LCValidationException: if the filter is malformed.
    """
    if not isinstance(where, dict):
        raise LCValidationException(f"A filter must be a dictionary, got {where!r}.")
    normalized: FilterType = {}
    for key, value in where.items():
        if key in LOGICAL_OPERATORS:
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(sub_filter, dict) for sub_filter in value
            ):
                raise LCValidationException(
                    f"Operator '{key}' requires a list of filters, got {value!r}."
                )
            normalized[key] = [normalize_filter(sub_filter) for sub_filter in value]
        elif is_condition(value):
            normalized[key] = normalize_condition(value)
        else:
            normalized[key] = normalize_payload_value(value)
    return normalized


def and_(*filters: FilterType) -> FilterType:
    return {AND_OPERATOR: list(filters)}


def or_(*filters: FilterType) -> FilterType:
    return {OR_OPERATOR: list(filters)}


def in_values(values: Iterable[Any]) -> ConditionType:
    return {"$in": list(values)}


def regex(pattern: str, options: str | None = None) -> ConditionType:
    if options:
        return {"$regex": pattern, "$options": options}
    return {"$regex": pattern}


def in_query(where: FilterType, class_name: str) -> ConditionType:
    """Match pointer fields referencing records of `class_name` matching `where`."""
    return {"$inQuery": {"where": where, "className": class_name}}


def not_in_query(where: FilterType, class_name: str) -> ConditionType:
    return {"$notInQuery": {"where": where, "className": class_name}}


def select(key: str, where: FilterType, class_name: str) -> ConditionType:
    """Match fields equal to the `key` field of the records of another query."""
    return {
        "$select": {
            "query": {"className": class_name, "where": where},
            "key": key,
        }
    }


def near_sphere(
    point: GeoPoint,
    *,
    max_distance_in_kilometers: float | None = None,
    max_distance_in_miles: float | None = None,
    max_distance_in_radians: float | None = None,
) -> ConditionType:
    condition: ConditionType = {"$nearSphere": point}
    if max_distance_in_kilometers is not None:
        condition["$maxDistanceInKilometers"] = max_distance_in_kilometers
    if max_distance_in_miles is not None:
        condition["$maxDistanceInMiles"] = max_distance_in_miles
    if max_distance_in_radians is not None:
        condition["$maxDistanceInRadians"] = max_distance_in_radians
    return condition


def within_box(southwest: GeoPoint, northeast: GeoPoint) -> ConditionType:
    return {"$within": {"$box": [southwest, northeast]}}
