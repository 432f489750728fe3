"""Plugin loading exports."""

from .plugin_loading import PluginLoadError, resolve_plugin_type

__all__ = [
    "PluginLoadError",
    "resolve_plugin_type",
]
