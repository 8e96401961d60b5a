from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Transport: empty port = GPS off, "gpsd" = gpsd client, else serial device
    port: str = ""
    baudrate: int = 4800
    height: float | None = None
    gpsd_host: str = "127.0.0.1"
    gpsd_port: int = 2947

    # Simulation (no hardware)
    simulate: bool = False
    sim_lat: float = 52.520008
    sim_lon: float = 13.404954
    sim_alt: float = 35.0

    # Published when no transport is configured
    station_lat: float | None = None
    station_lon: float | None = None

    # Cadence
    tick_interval: float = 1.0
    health_interval: float = 10.0

    # Publish interface
    publish_url: str = "ws://127.0.0.1:8080/data_plugins"

    # Alerts
    beep_control: bool = False

    # Server map registration
    update_map_pos: bool = False
    update_map_interval: int = 60
    map_api_url: str = "https://servers.fmdx.org/api/"
    tuner_name: str = ""
    tuner_desc: str = ""
    contact: str = ""
    tuner_device: str = ""
    token: str = ""
    proxy_url: str = ""
    webserver_port: int = 8080
    public_tuner: bool = True
    lock_to_admin: bool = False
    audio_channels: int = 2
    audio_quality: str = "128k"

    model_config = {"env_prefix": "GPS_"}

    @property
    def transport_kind(self) -> str:
        if self.simulate:
            return "simulation"
        if not self.port:
            return "off"
        if self.port == "gpsd":
            return "gpsd"
        return "serial"

    @property
    def map_interval_s(self) -> int:
        return max(self.update_map_interval, 15)
