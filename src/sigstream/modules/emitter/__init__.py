"""Script emitters for the target mail platform."""

from .powershell import PowerShellEmitter, managed_filter

__all__ = ["PowerShellEmitter", "managed_filter"]
