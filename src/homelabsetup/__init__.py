"""
homelab-setup - Bootstrap and provisioning tool for the homelab monitoring stack
"""

__version__ = "1.0.0"

from .core import BootstrapError, HomelabBootstrap

__all__ = ["BootstrapError", "HomelabBootstrap"]
