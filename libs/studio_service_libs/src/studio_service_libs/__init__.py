"""
Studio Service Libraries.

Logging, configuration and error handling shared by the gateway service and
the client session layer.
"""

from .logging_utils import configure_service_logging, create_service_logger

__all__ = ["configure_service_logging", "create_service_logger"]
