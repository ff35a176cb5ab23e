"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- connect: Check the API key handshake
- doctypes / metadata / profiles: Read-only lookups
- documents / search: List documents of a workspace
- download / upload / url: Move documents in and out
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
