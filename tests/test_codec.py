"""Tests for the hex-line MIDI codec."""

import mido
import pytest

from pworch.midi.codec import ByteTriplet, HexMidiDecoder, encode_hex, led_triplet, message_to_triplet


@pytest.fixture
def decoder():
    return HexMidiDecoder()


@pytest.mark.unit
class TestHexMidiDecoder:
    """Decoding of amidi dump lines."""

    def test_note_on(self, decoder):
        msg = decoder.decode_line("90 05 7F")
        assert msg.type == "note_on"
        assert msg.channel == 0
        assert msg.note == 5
        assert msg.velocity == 127

    def test_channel_from_low_nibble(self, decoder):
        msg = decoder.decode_line("B3 30 40")
        assert msg.type == "control_change"
        assert msg.channel == 3
        assert msg.control == 0x30
        assert msg.value == 0x40

    def test_whitespace_is_ignored(self, decoder):
        assert decoder.decode_line("  80 05 00 \n").type == "note_off"

    def test_running_status_reuses_last_status(self, decoder):
        """A status-less two-byte line decodes as the last status's data bytes."""
        decoder.decode_line("B0 30 10")
        msg = decoder.decode_line("30 11")

        assert msg.type == "control_change"
        assert msg.control == 0x30
        assert msg.value == 0x11

    def test_running_status_persists_across_calls(self, decoder):
        decoder.decode_line("90 01 7F")
        first = decoder.decode_line("02 7F")
        second = decoder.decode_line("03 00")

        assert (first.type, first.note) == ("note_on", 2)
        assert (second.type, second.note, second.velocity) == ("note_on", 3, 0)

    def test_two_byte_line_with_status_is_a_new_message(self, decoder):
        decoder.decode_line("B0 30 10")
        msg = decoder.decode_line("C2 05")

        assert msg.type == "program_change"
        assert msg.channel == 2
        assert msg.program == 5
        assert decoder.last_status == 0xC2

    def test_running_status_before_any_status_yields_nothing(self, decoder):
        assert decoder.decode_line("30 11") is None

    @pytest.mark.parametrize("line", ["90", "90 05 7F 00", "900", "zz yy xx"])
    def test_malformed_lines_are_dropped(self, decoder, line):
        assert decoder.decode_line(line) is None

    def test_malformed_line_keeps_decoder_state(self, decoder):
        decoder.decode_line("B0 30 10")
        decoder.decode_line("B0 30 10 00")
        assert decoder.decode_line("30 12").value == 0x12

    def test_undecodable_message_keeps_last_status(self, decoder):
        decoder.decode_line("B0 30 10")

        assert decoder.decode_line("90 80 7F") is None
        assert decoder.last_status == 0xB0
        assert decoder.decode_line("30 12").type == "control_change"

    def test_blank_line(self, decoder):
        assert decoder.decode_line("   ") is None

    def test_pitchwheel(self, decoder):
        msg = decoder.decode_line("E0 00 40")
        assert msg.type == "pitchwheel"
        assert msg.pitch == 0

    def test_decode_lines_skips_failures(self, decoder):
        messages = decoder.decode_lines(["90 01 7F", "garbage", "80 01 00"])
        assert [m.type for m in messages] == ["note_on", "note_off"]


@pytest.mark.unit
class TestEncoding:
    """LED triplets and hex output."""

    def test_led_triplet(self):
        assert led_triplet(0, 5, 3) == ByteTriplet(0x90, 5, 3)
        assert led_triplet(2, 5, 3).b1 == 0x92

    def test_triplet_hex(self):
        assert ByteTriplet(0x90, 0x05, 0x01).hex() == "900501"

    def test_encode_hex_concatenates_and_skips_none(self):
        payload = encode_hex([ByteTriplet(0x90, 1, 1), None, ByteTriplet(0x90, 2, 0)])
        assert payload == "900101900200"

    def test_encode_hex_empty(self):
        assert encode_hex([]) == ""

    def test_message_to_triplet(self):
        msg = mido.Message("note_on", channel=1, note=10, velocity=5)
        assert message_to_triplet(msg) == ByteTriplet(0x91, 10, 5)

    def test_message_to_triplet_rejects_short_messages(self):
        with pytest.raises(ValueError):
            message_to_triplet(mido.Message("program_change", program=1))


@pytest.mark.unit
@pytest.mark.parametrize("line", ["90 05 7F", "80 27 00", "B1 30 40", "92 00 00"])
def test_three_byte_line_round_trips(line):
    """Decoding then re-encoding a three-byte line reproduces its bytes."""
    msg = HexMidiDecoder().decode_line(line)
    assert message_to_triplet(msg).hex() == line.replace(" ", "").lower()
