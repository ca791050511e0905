"""
Main application: QR identity scanner.

Opens the camera, scans frames for QR codes, decodes identity payloads and
keeps a deduplicated record list that survives restarts.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the live camera frame for debugging
    --no-web: Do not start the HTTP API
"""

import os
import sys
import argparse
import logging
import signal
import threading
from typing import Any, Dict, Tuple, Optional

import yaml
import uvicorn

from models.config import Config
from ops.logging import setup_logging
from records.store import KEY_DERIVERS
from runtime.context import build_session
from pipeline.engine import create_engine_from_config
from web.app import create_app

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detection', 'records', 'storage', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    backend = camera.get('backend', 'opencv')
    if backend not in ('opencv', 'picamera2'):
        return False, "camera.backend must be one of: opencv, picamera2"
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    device_id = camera['device_id']
    if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
        return False, "camera.device_id must be an integer (index) or string (path/URL)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"

    resolution = camera.get('resolution', [1280, 720])
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(_positive_int(x) for x in resolution):
        return False, "camera.resolution values must be positive integers"
    if not _positive_int(camera.get('fps', 30)):
        return False, "camera.fps must be a positive integer"
    if camera.get('facing_mode', 'environment') not in ('environment', 'user'):
        return False, "camera.facing_mode must be one of: environment, user"
    if not isinstance(camera.get('allow_insecure', False), bool):
        return False, "camera.allow_insecure must be a boolean"

    # Detection
    detection = config.get('detection') or {}
    if detection.get('backend', 'auto') not in ('auto', 'native', 'software'):
        return False, "detection.backend must be one of: auto, native, software"
    for key in ('scan_interval_ms', 'max_scan_width', 'max_consecutive_failures'):
        if key in detection and not _positive_int(detection[key]):
            return False, f"detection.{key} must be a positive integer"
    if 'duplicate_cooldown_ms' in detection:
        cooldown = detection['duplicate_cooldown_ms']
        if isinstance(cooldown, bool) or not isinstance(cooldown, (int, float)) or cooldown < 0:
            return False, "detection.duplicate_cooldown_ms must be a non-negative number"

    # Records
    records = config.get('records') or {}
    key_order = records.get('dedup_key_order', list(KEY_DERIVERS))
    if not isinstance(key_order, list) or not key_order:
        return False, "records.dedup_key_order must be a non-empty list"
    unknown = [k for k in key_order if k not in KEY_DERIVERS]
    if unknown:
        return False, f"records.dedup_key_order has unknown key kinds: {', '.join(map(str, unknown))}"
    if 'max_history' in records and not _positive_int(records['max_history']):
        return False, "records.max_history must be a positive integer"

    # Storage
    storage = config.get('storage') or {}
    if 'snapshot_path' not in storage:
        return False, "Missing storage.snapshot_path"
    if not isinstance(storage['snapshot_path'], str):
        return False, "storage.snapshot_path must be a string"

    # Web
    web = config.get('web') or {}
    if 'port' in web and not _positive_int(web['port']):
        return False, "web.port must be a positive integer"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='QR Identity Scanner')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Enable visual display')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the HTTP API')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting QR Identity Scanner")

    session = build_session(config)
    for reason in session.capabilities.reasons:
        logging.info(f"Probe: {reason}")
    if not session.capabilities.can_scan:
        logging.warning("Scanning is not possible on this system; the API stays available for manual decode")

    engine = create_engine_from_config(config, session, display=args.display)

    def handle_signal(signum, frame):
        logging.info(f"Received signal {signum}, shutting down")
        engine.stop()
        session.scanner.shutdown()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    web_cfg = Config.from_dict(config).web
    if web_cfg.enabled and not args.no_web:
        host = web_cfg.host
        port = int(web_cfg.port)

        def run_web_app():
            uvicorn.run(
                create_app(session),
                host=host,
                port=port,
                log_level="info",
            )

        web_thread = threading.Thread(target=run_web_app, daemon=True)
        web_thread.start()
        logging.info(f"Web API started on {host}:{port}")

    try:
        engine.run()
    finally:
        session.close()
        logging.info("QR Identity Scanner stopped")


if __name__ == "__main__":
    main()
