"""Configuration utilities for Studio services and clients."""

from .secure_base import SecureServiceSettings

__all__ = ["SecureServiceSettings"]
