"""Extension layer — plugin system via pluggy.

Discovery: ``formctl.plugins`` entry points plus single-file plugins from a
local directory.
INVARIANT: Plugin failures are warnings, never errors.
"""

from formctl.plugins.hookspecs import hookimpl
from formctl.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
