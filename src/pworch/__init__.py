"""pworch: MIDI control-surface daemon for PipeWire audio setups."""

__version__ = "0.1.0"
