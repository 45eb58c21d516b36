"""
Metaload CLI Commands
Contains the executable modules for loading and inspecting backups.
"""

from . import load

__all__ = ["load"]
