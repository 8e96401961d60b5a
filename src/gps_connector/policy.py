from datetime import datetime, timezone

from gps_connector.updates import FixMode


def resolve_altitude(
    fixed_altitude: float | None,
    altitude: float | None,
    reported_mode: FixMode | None,
) -> tuple[float | None, FixMode | None]:
    """Altitude/mode precedence shared by the NMEA, gpsd and assembly paths.

    A configured fixed altitude always wins and pins the mode to 2D. An
    explicit no-fix report keeps the cached altitude but is never upgraded.
    Otherwise any known altitude upgrades the solution to 3D.
    """
    if fixed_altitude is not None:
        return fixed_altitude, FixMode.FIX_2D
    if reported_mode == FixMode.NO_FIX:
        return altitude, FixMode.NO_FIX
    if altitude is not None:
        return altitude, FixMode.FIX_3D
    return None, reported_mode


def to_float(value) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result:  # NaN
        return None
    return result


def to_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def degrees_minutes_to_decimal(raw: str, degree_digits: int, hemisphere: str) -> float | None:
    """Convert NMEA ddmm.mmmm / dddmm.mmmm to signed decimal degrees."""
    degrees = to_float(raw[:degree_digits])
    minutes = to_float(raw[degree_digits:])
    if degrees is None or minutes is None:
        return None
    value = degrees + minutes / 60
    return -value if hemisphere in ("S", "W") else value


def format_timestamp(value: datetime | None, now: datetime | None = None) -> str:
    """ISO-8601 UTC with the millisecond field forced to .000Z.

    Falls back to the acquisition time when the receiver time is absent.
    """
    if value is None:
        value = now or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")
