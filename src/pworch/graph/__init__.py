"""Audio-graph model, reconciliation, and the graph tool links."""

from .hotplug import HotplugTracker
from .model import GraphModel, LinkEntry, matches_node
from .pw_dump import PwDumpMonitor, SnapshotFramer, dump_once
from .pw_link import PwLinkRequester
from .reconciler import AudioSource, GraphReconciler, LinkPair, MixerChannel

__all__ = [
    "AudioSource",
    "GraphModel",
    "GraphReconciler",
    "HotplugTracker",
    "LinkEntry",
    "LinkPair",
    "MixerChannel",
    "PwDumpMonitor",
    "PwLinkRequester",
    "SnapshotFramer",
    "dump_once",
    "matches_node",
]
