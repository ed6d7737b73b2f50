"""
Core utilities and configuration for AssistMesh-AI.

This package provides the settings model and the logging helpers shared by the
orchestration core.
"""

from assistmesh_ai.core.config import Settings, settings
from assistmesh_ai.core.logging_config import bind_run_logger, get_logger, log_event, setup_logging

__all__ = ["Settings", "settings", "bind_run_logger", "get_logger", "log_event", "setup_logging"]
