"""
apm - Addon Package Manager command-line tool.

Installs, removes, updates, enables, disables and queries addons managed by
addonkit.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
