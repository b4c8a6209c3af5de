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

from lcdb.constants import TypeTag


class UnsetType:
    """
    The type of the `UNSET` marker, standing for "no value at all" for a field
    of a record (as opposed to `None`, which is sent to the API as `null`).
    """

    _instance: UnsetType | None = None

    def __new__(cls) -> UnsetType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(unset)"

    def __bool__(self) -> bool:
        return False


UNSET = UnsetType()


@dataclass(frozen=True)
class GeoPoint:
    """
    A geographical location, to be stored in a record field or used
    as the operand of the geo operators (`$nearSphere`, `$within`).

    Attributes:
        latitude: the latitude in degrees, between -90 and 90.
        longitude: the longitude in degrees, between -180 and 180.

    Example:
        >>> GeoPoint(39.9, 116.4).to_dict()
        {'__type': 'GeoPoint', 'latitude': 39.9, 'longitude': 116.4}
    """

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "__type": TypeTag.GEO_POINT,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    @staticmethod
    def from_dict(raw_dict: dict[str, Any]) -> GeoPoint:
        return GeoPoint(
            latitude=raw_dict["latitude"],
            longitude=raw_dict["longitude"],
        )


@dataclass(frozen=True)
class Pointer:
    """
    A reference to a record of some class, stored in a field of another record
    or used to filter on such a field by equality.

    Attributes:
        class_name: the name of the class the referenced record belongs to.
        object_id: the `objectId` of the referenced record.
    """

    class_name: str
    object_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "__type": TypeTag.POINTER,
            "className": self.class_name,
            "objectId": self.object_id,
        }

    @staticmethod
    def from_dict(raw_dict: dict[str, Any]) -> Pointer:
        return Pointer(
            class_name=raw_dict["className"],
            object_id=raw_dict["objectId"],
        )


__all__ = [
    "GeoPoint",
    "Pointer",
    "UNSET",
    "UnsetType",
]
