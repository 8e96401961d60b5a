"""gpsd JSON watch-stream decoder (TPV and SKY reports)."""

import json
import logging
from datetime import datetime, timezone

from gps_connector.policy import to_float, to_int
from gps_connector.satellites import SatelliteRecord, SatelliteSystem
from gps_connector.updates import (
    FixMode,
    HdopUpdate,
    NoFixUpdate,
    PositionUpdate,
    SatelliteUpdate,
    Update,
)

logger = logging.getLogger(__name__)

WATCH_COMMAND = b'?WATCH={"enable":true,"json":true};\n'


def parse_gpsd_line(line: str) -> Update | None:
    """Decode one gpsd report. Banners, partial lines and other classes yield None."""
    line = line.strip()
    if not line.startswith("{"):
        return None
    try:
        msg = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Discarding malformed gpsd line %r", line)
        return None
    if not isinstance(msg, dict):
        return None

    cls = msg.get("class")
    if cls == "SKY":
        return _parse_sky(msg)
    if cls == "TPV":
        return _parse_tpv(msg)
    return None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_sky(msg: dict) -> Update | None:
    hdop = to_float(msg.get("hdop")) if _is_number(msg.get("hdop")) else None
    satellites = msg.get("satellites")

    if not isinstance(satellites, list):
        return HdopUpdate(hdop=hdop) if hdop is not None else None

    records = []
    for sat in satellites:
        if not isinstance(sat, dict):
            continue
        prn = to_int(sat.get("PRN"))
        if prn is None:
            continue
        records.append(
            SatelliteRecord(
                prn=prn,
                elevation=to_int(sat.get("el")) or 0,
                azimuth=to_int(sat.get("az")) or 0,
                snr=to_int(sat.get("ss")) or 0,
                system=SatelliteSystem.GPSD,
            )
        )
    return SatelliteUpdate(system=SatelliteSystem.GPSD, records=tuple(records), hdop=hdop)


def _parse_tpv(msg: dict) -> Update:
    raw_mode = msg.get("mode", 0)
    mode = int(raw_mode) if _is_number(raw_mode) else 0
    lat, lon = msg.get("lat"), msg.get("lon")
    # alt may be missing on a 2D fix; the cached value is kept in that case
    altitude = msg.get("alt") if _is_number(msg.get("alt")) else None
    timestamp = _parse_time(msg.get("time"))

    if mode >= 2 and _is_number(lat) and _is_number(lon):
        return PositionUpdate(
            latitude=float(lat),
            longitude=float(lon),
            timestamp=timestamp,
            altitude=float(altitude) if altitude is not None else None,
            fix_mode=FixMode.FIX_3D if mode >= 3 else FixMode.FIX_2D,
        )
    return NoFixUpdate(
        timestamp=timestamp,
        altitude=float(altitude) if altitude is not None else None,
    )


def _parse_time(value) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
