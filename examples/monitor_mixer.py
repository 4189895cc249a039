#!/usr/bin/env python3
"""
Interactive mixer controller monitor.

Connects to a slider/button controller (saved port or first available),
prints slider levels and button presses, and keeps reconnecting if the
device is unplugged.

Usage:
    python examples/monitor_mixer.py [PORT] [SLIDERS] [BUTTONS]
"""

import sys
import time
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mixlink import (
    SliderDevice,
    ButtonStateChanged,
    Connected,
    DataReceived,
    Disconnected,
    ProtocolValidated,
    ValidationFailed,
    parse_slider_levels,
)
from mixlink.device import PortNotFoundError, find_first_port

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


def on_event(event):
    if isinstance(event, DataReceived):
        levels = parse_slider_levels(event.slider_line)
        text = " ".join(
            "MUTE" if r.muted else f"{r.level * 100:5.1f}%" for r in levels
        )
        print(f"\r[SLIDERS] {text}", end="")
        sys.stdout.flush()
    elif isinstance(event, ButtonStateChanged):
        print(f"\n[BUTTON] #{event.index} pressed")
    elif isinstance(event, ProtocolValidated):
        print(f"\n[VALID] Controller recognised on {event.port}")
    elif isinstance(event, ValidationFailed):
        print(f"\n[INVALID] {event.port} is not a mixer controller, skipping it for a while")
    elif isinstance(event, Connected):
        print(f"\n[CONNECTED] {event.port}")
    elif isinstance(event, Disconnected):
        print(f"\n[DISCONNECTED] {event.port} ({event.reason.value})")


def main():
    port = sys.argv[1] if len(sys.argv) > 1 else None
    if port is None:
        try:
            port = find_first_port(matcher=lambda info: info.is_usb).port
            print(f"Using first USB serial port: {port}")
        except PortNotFoundError:
            print("No USB serial port found yet.")
    sliders = int(sys.argv[2]) if len(sys.argv) > 2 else 0
    buttons = int(sys.argv[3]) if len(sys.argv) > 3 else 0

    device = SliderDevice()
    device.subscribe(on_event)
    device.configure_layout(sliders, buttons)

    print("Starting scheduler (watchdog + auto-reconnect)...")
    device.start()

    if not device.try_connect_to_saved(port):
        print("Initial connection failed - retrying in the background. Plug the device in.")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        print("\nDisconnecting...")
        device.close()
        print("Done.")


if __name__ == "__main__":
    main()
