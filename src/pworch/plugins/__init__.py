"""Hosted LV2 plugins."""

from .host import PluginHost, filter_host_output

__all__ = ["PluginHost", "filter_host_output"]
