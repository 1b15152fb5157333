# (c) Copyright Datacraft, 2026
"""Configuration module for alumnet."""
from .settings import DeploymentMode, ProvisioningMode, Settings, get_settings

__all__ = [
	'DeploymentMode',
	'ProvisioningMode',
	'Settings',
	'get_settings',
]
