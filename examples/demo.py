#!/usr/bin/env python3
"""
Example usage of the GPS Connector API.

Run the connector first:
    GPS_SIMULATE=true uv run uvicorn gps_connector.main:app --port 8090
    # or with a receiver: GPS_PORT=/dev/ttyACM0 GPS_BAUDRATE=9600 ...
    # or via gpsd:        GPS_PORT=gpsd ...

Then run this script:
    uv run python examples/demo.py
    uv run python examples/demo.py --base-url http://192.168.1.50:8090 --count 30
"""

import argparse
import sys
import time

import httpx

# ── Defaults ───────────────────────────────────────────────

DEFAULT_BASE_URL = "http://localhost:8090"
POLL_INTERVAL_S = 1.0


def main():
    parser = argparse.ArgumentParser(description="GPS Connector demo")
    parser.add_argument(
        "--base-url", default=DEFAULT_BASE_URL,
        help=f"Connector URL (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--count", type=int, default=10,
        help="Number of samples to print (default: 10)",
    )
    args = parser.parse_args()
    base = args.base_url.rstrip("/")

    client = httpx.Client(base_url=base, timeout=5.0)

    # ── 1. Health check ────────────────────────────────────
    print("=== Health Check ===")
    health = client.get("/health").json()
    print(f"  Status:     {health['status']}")
    print(f"  Transport:  {health['transport']}")
    print(f"  Connected:  {health['transport_connected']}")
    print(f"  Last data:  {health['last_data_age_s']}s ago")

    if health["transport"] == "off":
        print("\n  No GPS transport configured (set GPS_PORT or GPS_SIMULATE).")
        sys.exit(1)

    # ── 2. Samples ─────────────────────────────────────────
    print("\n=== Samples ===")
    for _ in range(args.count):
        r = client.get("/gps")
        if r.status_code == 503:
            print("  (no sample yet)")
        else:
            s = r.json()
            systems = sorted({sat["sys"] for sat in s["satellites"]})
            print(
                f"  {s['time']}  {s['status']:<8} "
                f"{s['lat'] or '-':>14} {s['lon'] or '-':>14} "
                f"alt={s['alt'] or '-'} mode={s['mode'] or '-'} "
                f"hdop={s['hdop']} sats={len(s['satellites'])} {','.join(systems)}"
            )
        time.sleep(POLL_INTERVAL_S)
    print()


if __name__ == "__main__":
    main()
