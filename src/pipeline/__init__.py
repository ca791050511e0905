"""
Pipeline module: drives the frame scanner from a dedicated loop.
"""

from .engine import ScanEngine, EngineConfig, create_engine_from_config

__all__ = [
    "ScanEngine",
    "EngineConfig",
    "create_engine_from_config",
]
