from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from itertools import chain


class SatelliteSystem(str, Enum):
    GPS = "GPS"
    GLONASS = "GLONASS"
    GALILEO = "Galileo"
    BEIDOU = "BeiDou"
    GNSS = "GNSS"
    GPSD = "GPSD"


TALKER_SYSTEMS: dict[str, SatelliteSystem] = {
    "GP": SatelliteSystem.GPS,
    "GL": SatelliteSystem.GLONASS,
    "GA": SatelliteSystem.GALILEO,
    "BD": SatelliteSystem.BEIDOU,
    "GB": SatelliteSystem.BEIDOU,
    "GN": SatelliteSystem.GNSS,
}


def system_for_talker(talker: str) -> SatelliteSystem:
    """Map an NMEA talker ID to its satellite system (unknown talkers count as GPS)."""
    return TALKER_SYSTEMS.get(talker.upper(), SatelliteSystem.GPS)


@dataclass(frozen=True)
class SatelliteRecord:
    prn: int
    elevation: int
    azimuth: int
    snr: int
    system: SatelliteSystem

    def to_dict(self) -> dict:
        return {
            "prn": self.prn,
            "el": self.elevation,
            "az": self.azimuth,
            "snr": self.snr,
            "sys": self.system.value,
        }


class SatelliteTable:
    """Satellites in view, keyed by reporting system.

    Each system's list is only ever replaced wholesale. Multi-part GSV
    sweeps are staged until their last part arrives and then committed
    in one step, so readers never see a half-received sweep.
    """

    def __init__(self) -> None:
        self._systems: dict[SatelliteSystem, tuple[SatelliteRecord, ...]] = {}
        self._staged: dict[SatelliteSystem, list[SatelliteRecord]] = {}
        self._expected: dict[SatelliteSystem, int] = {}

    def replace_system(
        self, system: SatelliteSystem, records: Iterable[SatelliteRecord]
    ) -> None:
        self._systems[system] = tuple(records)

    def ingest_sweep(
        self,
        system: SatelliteSystem,
        sequence: int,
        total: int,
        records: Iterable[SatelliteRecord],
    ) -> bool:
        """Stage one part of a sweep. Returns True when the sweep was committed."""
        if sequence == 1:
            self._staged[system] = list(records)
        elif self._expected.get(system) == sequence:
            self._staged[system].extend(records)
        else:
            # Gap or stray part: wait for the next sweep to start
            self._staged.pop(system, None)
            self._expected.pop(system, None)
            return False

        if sequence >= total:
            self.replace_system(system, self._staged.pop(system))
            self._expected.pop(system, None)
            return True

        self._expected[system] = sequence + 1
        return False

    def records_for(self, system: SatelliteSystem) -> tuple[SatelliteRecord, ...]:
        return self._systems.get(system, ())

    def systems(self) -> list[SatelliteSystem]:
        return list(self._systems)

    def flatten(self) -> Iterator[SatelliteRecord]:
        return chain.from_iterable(self._systems.values())

    def clear(self) -> None:
        self._systems.clear()
        self._staged.clear()
        self._expected.clear()
