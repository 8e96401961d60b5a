"""NMEA-0183 line decoder.

Framing (talker, sentence type, field split) is left to pynmea2; the
fields themselves are decoded here so a malformed value drops the line
instead of leaking through as a raw string.
"""

import logging
from datetime import datetime, timezone

import pynmea2

from gps_connector.policy import degrees_minutes_to_decimal, to_float, to_int
from gps_connector.satellites import SatelliteRecord, system_for_talker
from gps_connector.updates import (
    AltitudeUpdate,
    HdopUpdate,
    NoFixUpdate,
    PositionUpdate,
    SatelliteUpdate,
    Update,
)

logger = logging.getLogger(__name__)

SUPPORTED_SENTENCES = ("RMC", "GGA", "GSA", "GSV")


def parse_nmea_line(line: str) -> Update | None:
    """Decode one NMEA sentence. Never raises; unusable lines yield None."""
    content = line.strip().split("*", 1)[0]
    if not content:
        return None
    try:
        # Checksum already stripped, so pynmea2 only does the framing
        msg = pynmea2.parse(content)
    except pynmea2.ParseError as exc:
        logger.debug("Discarding NMEA line %r: %s", line, exc)
        return None

    sentence = getattr(msg, "sentence_type", "")
    if sentence not in SUPPORTED_SENTENCES:
        return None

    fields = [f.strip() for f in msg.data]
    try:
        if sentence == "RMC":
            return _parse_rmc(fields)
        if sentence == "GGA":
            return _parse_gga(fields)
        if sentence == "GSA":
            return _parse_gsa(fields)
        return _parse_gsv(msg.talker, fields)
    except (ValueError, IndexError) as exc:
        logger.debug("Discarding %s sentence %r: %s", sentence, line, exc)
        return None


# ── Sentences ─────────────────────────────────────────
# Field indexes below are relative to the first field after the header.


def _parse_rmc(fields: list[str]) -> Update | None:
    # time, status, lat, N/S, lon, E/W, speed, course, date, ...
    if len(fields) < 9:
        return None
    utc_time, status, lat, lat_dir, lon, lon_dir = fields[:6]
    date = fields[8]

    if status != "A" or not (lat and lon and lat_dir and lon_dir):
        return NoFixUpdate(timestamp=_parse_datetime(date, utc_time))

    latitude = degrees_minutes_to_decimal(lat, 2, lat_dir)
    longitude = degrees_minutes_to_decimal(lon, 3, lon_dir)
    if latitude is None or longitude is None:
        return None

    return PositionUpdate(
        latitude=latitude,
        longitude=longitude,
        timestamp=_parse_datetime(date, utc_time),
    )


def _parse_gga(fields: list[str]) -> Update | None:
    # time, lat, N/S, lon, E/W, quality, numsats, hdop, altitude, M, ...
    if len(fields) < 9:
        return None
    return AltitudeUpdate(altitude=to_float(fields[8]), hdop=to_float(fields[7]))


def _parse_gsa(fields: list[str]) -> Update | None:
    # mode, fix type, 12 x PRN, PDOP, HDOP, VDOP
    if len(fields) < 16:
        return None
    hdop = to_float(fields[15])
    return HdopUpdate(hdop=hdop) if hdop is not None else None


def _parse_gsv(talker: str, fields: list[str]) -> Update | None:
    # total msgs, msg number, sats in view, then {PRN, elev, azimuth, SNR} x 4
    total = to_int(fields[0]) if fields else None
    sequence = to_int(fields[1]) if len(fields) > 1 else None
    if total is None or sequence is None or sequence < 1:
        return None

    system = system_for_talker(talker)
    records = []
    groups = 0
    for i in range(3, len(fields) - 3, 4):
        groups += 1
        prn = to_int(fields[i])
        elevation = to_int(fields[i + 1])
        azimuth = to_int(fields[i + 2])
        if prn is None or elevation is None or azimuth is None:
            continue
        snr = to_int(fields[i + 3]) or 0
        records.append(SatelliteRecord(prn, elevation, azimuth, snr, system))

    if groups and not records:
        return None

    return SatelliteUpdate(
        system=system, records=tuple(records), sequence=sequence, total=total
    )


def _parse_datetime(date: str, utc_time: str) -> datetime | None:
    if len(date) < 6 or len(utc_time) < 6:
        return None
    try:
        return datetime.strptime(
            f"20{date[4:6]}-{date[2:4]}-{date[0:2]}T{utc_time[0:6]}",
            "%Y-%m-%dT%H%M%S",
        ).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
