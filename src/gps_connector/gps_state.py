import time
from dataclasses import dataclass, field
from datetime import datetime

from gps_connector.policy import resolve_altitude
from gps_connector.satellites import SatelliteTable
from gps_connector.updates import (
    AltitudeUpdate,
    FixMode,
    HdopUpdate,
    NoFixUpdate,
    PositionUpdate,
    SatelliteUpdate,
    Update,
)


@dataclass
class AcquisitionState:
    # Current fix; latitude/longitude are only ever written together
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    fix_mode: FixMode | None = None
    hdop: float | None = None
    timestamp: datetime | None = None

    satellites: SatelliteTable = field(default_factory=SatelliteTable)

    # Last assembled sample (gps_connector.models.GpsSample)
    last_sample: object | None = None

    # Connection
    transport_connected: bool = False

    # Counters
    lines_received: int = 0
    lines_discarded: int = 0
    last_data_time: float = field(default_factory=time.monotonic)

    def set_position(self, latitude: float, longitude: float) -> None:
        self.latitude = latitude
        self.longitude = longitude

    def apply(self, update: Update, fixed_altitude: float | None = None) -> bool | None:
        """Fold one parsed update into the state.

        Returns the fix opinion carried by the update: True for a valid
        fix, False for an explicit no-fix, None when the update says
        nothing about fix validity.
        """
        if isinstance(update, PositionUpdate):
            return self.update_from_position(update, fixed_altitude)
        if isinstance(update, NoFixUpdate):
            return self.update_from_no_fix(update, fixed_altitude)
        if isinstance(update, AltitudeUpdate):
            self.update_from_altitude(update, fixed_altitude)
        elif isinstance(update, HdopUpdate):
            self.hdop = update.hdop
        elif isinstance(update, SatelliteUpdate):
            self.update_from_satellites(update)
        return None

    def update_from_position(
        self, update: PositionUpdate, fixed_altitude: float | None
    ) -> bool:
        self.set_position(update.latitude, update.longitude)
        # A report without a usable receiver time falls back to acquisition time
        self.timestamp = update.timestamp
        if update.altitude is not None:
            self.altitude = update.altitude

        self.altitude, self.fix_mode = resolve_altitude(
            fixed_altitude, self.altitude, update.fix_mode or FixMode.FIX_2D
        )
        return True

    def update_from_no_fix(
        self, update: NoFixUpdate, fixed_altitude: float | None
    ) -> bool:
        self.timestamp = update.timestamp
        if update.altitude is not None:
            self.altitude = update.altitude
        self.altitude, self.fix_mode = resolve_altitude(
            fixed_altitude, self.altitude, FixMode.NO_FIX
        )
        return False

    def update_from_altitude(
        self, update: AltitudeUpdate, fixed_altitude: float | None
    ) -> None:
        if update.hdop is not None:
            self.hdop = update.hdop
        if update.altitude is None and fixed_altitude is None:
            return
        self.altitude, self.fix_mode = resolve_altitude(
            fixed_altitude, update.altitude, None
        )

    def update_from_satellites(self, update: SatelliteUpdate) -> None:
        self.satellites.ingest_sweep(
            update.system, update.sequence, update.total, update.records
        )
        if update.hdop is not None:
            self.hdop = update.hdop
