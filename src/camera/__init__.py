"""
Camera package.

Canonical imports:
- `from camera.camera import create_camera`
- `from camera.base import CameraSource, CameraRequest`
- `from camera.backends.opencv import OpenCVCamera` (USB, files, streams)
- `from camera.backends.picamera2 import Picamera2Camera` (CSI)
"""
