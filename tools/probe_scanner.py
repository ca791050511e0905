#!/usr/bin/env python3
"""
Diagnostic script for scanner setup.
Reports the capability probe, then reads frames and prints every decoded
QR payload so the camera and detector can be checked without the full app.

Usage:
    python tools/probe_scanner.py --device 0 --seconds 20
"""

import argparse
import os
import sys
import time

import cv2

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from camera.camera import create_camera  # noqa: E402
from decoding import PayloadDecoder  # noqa: E402
from detection.probe import probe_capabilities  # noqa: E402
from records.store import derive_dedup_key  # noqa: E402
from scanner.errors import ScanError  # noqa: E402


def _device(value):
    return int(value) if value.isdigit() else value


def main():
    """Main function for scanner diagnostics."""
    parser = argparse.ArgumentParser(description='Probe QR scanning setup')
    parser.add_argument('--device', type=str, default='0',
                        help='Camera index, device path, file or stream URL (default: 0)')
    parser.add_argument('--backend', type=str, default='auto', choices=['auto', 'native', 'software'],
                        help='Detection backend preference (default: auto)')
    parser.add_argument('--seconds', type=float, default=30.0,
                        help='How long to scan (default: 30)')
    parser.add_argument('--display', action='store_true',
                        help='Show the camera feed')
    args = parser.parse_args()

    camera_cfg = {"device_id": _device(args.device)}
    caps = probe_capabilities(camera_cfg, {"backend": args.backend})

    print("Capability probe:")
    for key, value in caps.to_dict().items():
        print(f"  {key}: {value}")
    if not caps.can_scan:
        print("ERROR: scanning is not possible with this setup")
        return 1

    decoder = PayloadDecoder.with_default_inflater()
    camera = create_camera(camera_cfg)
    try:
        camera.open()
    except ScanError as e:
        print(f"ERROR: camera not available ({e.code}): {e.message}")
        return 1

    print("Scanning. Press 'q' to quit.")
    deadline = time.time() + args.seconds
    last_value = None
    try:
        while time.time() < deadline:
            frame_data = camera.read()
            if frame_data is None:
                print("ERROR: Failed to read frame")
                break

            value = caps.detector.detect(frame_data.frame)
            if value and value != last_value:
                last_value = value
                try:
                    record = decoder.decode(value)
                except ScanError as e:
                    print(f"Payload found, not decodable here ({e.code})")
                    continue
                if record is None:
                    print(f"Unrecognized payload: {value[:60]!r}")
                else:
                    key = derive_dedup_key(record) or "(no identity key)"
                    print(f"Decoded [{record.source}] key={key}")

            if args.display:
                cv2.imshow('Scanner Probe', frame_data.frame)
                if cv2.waitKey(1) & 0xFF == ord('q'):
                    break
    finally:
        camera.close()
        if args.display:
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    sys.exit(main())
