"""
Homebrain File Adapters Package

Adapters for enumerating backing resources on disk.
"""

from homebrain.adapters.files.local import LocalFileEnumerator

__all__ = [
    "LocalFileEnumerator",
]
