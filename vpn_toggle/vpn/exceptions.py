"""Custom exceptions for VPN management."""


class VPNError(Exception):
    """Base exception for VPN-related errors."""
    pass


class ConfigurationError(VPNError):
    """Raised when there's an issue with VPN or application configuration"""
    pass


class SpawnError(VPNError):
    """Raised when the VPN client process cannot be started"""
    pass


class ExecutableNotFoundError(SpawnError):
    """Raised when the VPN client binary is not on the execution path"""
    pass


class TerminationError(VPNError):
    """Raised when the termination signal cannot be delivered"""
    pass
