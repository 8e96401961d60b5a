"""Structured updates produced by the line parsers.

Both wire formats decode into the same small set of variants; the
acquisition state applies them without knowing which protocol they came
from.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Union

from gps_connector.satellites import SatelliteRecord, SatelliteSystem


class FixMode(IntEnum):
    NO_FIX = 1
    FIX_2D = 2
    FIX_3D = 3


@dataclass(frozen=True)
class PositionUpdate:
    latitude: float
    longitude: float
    timestamp: datetime | None = None
    altitude: float | None = None
    # None when the sentence carries no fix quality (RMC)
    fix_mode: FixMode | None = None


@dataclass(frozen=True)
class NoFixUpdate:
    timestamp: datetime | None = None
    altitude: float | None = None


@dataclass(frozen=True)
class AltitudeUpdate:
    altitude: float | None
    hdop: float | None


@dataclass(frozen=True)
class HdopUpdate:
    hdop: float


@dataclass(frozen=True)
class SatelliteUpdate:
    system: SatelliteSystem
    records: tuple[SatelliteRecord, ...]
    sequence: int = 1
    total: int = 1
    hdop: float | None = None


Update = Union[PositionUpdate, NoFixUpdate, AltitudeUpdate, HdopUpdate, SatelliteUpdate]
