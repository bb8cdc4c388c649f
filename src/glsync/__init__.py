"""
glsync - mirror a GitLab group tree into a local directory tree.

This package discovers every active project below a GitLab group,
scans a local directory for existing working copies and clones, pulls
or deletes projects concurrently until the local tree matches the
remote group hierarchy.
"""

__version__ = "0.1.0"

from glsync.config import Config, load_config

__all__ = [
    "__version__",
    "Config",
    "load_config",
]
