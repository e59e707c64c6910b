"""MIDI codec and the external MIDI links (raw port, sequencer)."""

from .codec import ByteTriplet, HexMidiDecoder, encode_hex, led_triplet, message_to_triplet
from .sequencer import SequencerProcess, SequencerProtocol, control_command, to_sequencer_command

__all__ = [
    "ByteTriplet",
    "HexMidiDecoder",
    "SequencerProcess",
    "SequencerProtocol",
    "control_command",
    "encode_hex",
    "led_triplet",
    "message_to_triplet",
    "to_sequencer_command",
]
