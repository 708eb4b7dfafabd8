"""Configuration module for the bulk provisioning tool."""
from .settings import ProvisioningConfig, load_settings

__all__ = ["ProvisioningConfig", "load_settings"]
