"""Tests for the configuration and device models."""

import pytest
from pydantic import ValidationError

from conftest import make_config
from pworch.devices import APC_KEY_25, get_device, known_devices
from pworch.exceptions import ConfigValidationError, UnknownDeviceError
from pworch.models import (
    ButtonBinding,
    CommandAction,
    ConnectMode,
    CycleAction,
    Device,
    DialBinding,
    MapFunction,
    MidiEventSpec,
    load_config,
)


@pytest.mark.unit
class TestConfig:
    """Config parsing."""

    def test_defaults(self):
        config = make_config()

        assert config.device == "APC Key 25 MIDI"
        assert config.long_press_timeout_ms == 500
        assert config.reconcile_debounce_ms == 150
        assert config.mixer.node == "Mixer"
        assert config.bindings == {}

    def test_bindings_discriminated_by_type(self):
        config = make_config(bindings={
            "Button 1": {"type": "button", "press": {"actions": [{"type": "led::set", "button": "Button 1", "color": "RED"}]}},
            "Dial 1": {"type": "passthrough", "channel": 0, "controller": 7, "map_function": "taper"},
        })

        assert isinstance(config.bindings["Button 1"], ButtonBinding)
        assert isinstance(config.bindings["Dial 1"], DialBinding)
        assert config.dial_binding("Dial 1").map_function is MapFunction.TAPER
        assert config.button_binding("Dial 1") is None
        assert config.dial_binding("Button 1") is None

    def test_bare_action_shorthand(self):
        config = make_config(bindings={"Button 5": {"type": "command", "command": "echo hi"}})

        binding = config.button_binding("Button 5")
        assert isinstance(binding.press.actions[0], CommandAction)
        assert binding.long_press is None

    def test_binding_without_type_is_a_button(self):
        config = make_config(bindings={"Button 2": {"release": {"actions": [{"type": "config::reload"}]}}})

        binding = config.button_binding("Button 2")
        assert binding.press is None
        assert binding.release.actions[0].type == "config::reload"

    def test_unknown_action_type_rejected(self):
        with pytest.raises(ValidationError):
            make_config(bindings={"Button 1": {"type": "button", "press": {"actions": [{"type": "explode"}]}}})

    def test_nested_actions(self):
        config = make_config(bindings={"Button 1": {"type": "cycle", "items": [
            {"actions": [{"type": "cancel", "alt": {"type": "mute", "dial": "Dial 1"}}], "color": "GREEN"},
            {"actions": [{"type": "command", "command": "true", "on_finish": [{"type": "config::reload"}]}]},
        ]}})

        cycle = config.button_binding("Button 1").press.actions[0]
        assert isinstance(cycle, CycleAction)
        assert cycle.items[0].actions[0].alt.dial == "Dial 1"

    def test_graph_rules(self):
        config = make_config(pipewire={"rules": [
            {"node": "synth", "on_connect": [{"type": "config::reload"}]},
            {"node": "re:^firefox", "mixer_channel": "round_robin", "mixer_mode": "exclusive"},
            {"node": "mpv", "mixer_channel": 3},
        ]})

        assert config.hotplug_nodes == ["synth"]
        assert [r.node for r in config.mixer_rules] == ["re:^firefox", "mpv"]
        assert config.mixer_rules[0].mixer_mode is ConnectMode.EXCLUSIVE
        assert config.pipewire.rules[0].mixer_mode is ConnectMode.SMART

    @pytest.mark.parametrize("field,value", [
        ("long_press_timeout_ms", 0),
        ("reconcile_debounce_ms", -5),
        ("input_midi", ""),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            make_config(**{field: value})

    def test_range_bounds(self):
        with pytest.raises(ValidationError):
            make_config(bindings={"Button 1": {"type": "range", "dial": "Dial 1", "range": [0.0, 1.5]}})


@pytest.mark.unit
class TestMidiEventSpec:

    def test_note_events_rejected(self):
        with pytest.raises(ValidationError):
            MidiEventSpec(type="note_on", channel=0, note=60)

    def test_out_of_range_value(self):
        with pytest.raises(ValidationError):
            MidiEventSpec(type="control_change", channel=0, control=7, value=300)

    def test_high_precision_value(self):
        spec = MidiEventSpec(type="control_change", channel=0, control=7, value=16000, high_precision=True)
        assert spec.to_message().value == 0

    def test_high_precision_only_for_control_change(self):
        with pytest.raises(ValidationError):
            MidiEventSpec(type="program_change", channel=0, program=1, high_precision=True)


@pytest.mark.unit
class TestLoadConfig:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "input_midi: APC Key 25 MIDI\n"
            "output_midi: APC Key 25 MIDI\n"
            "bindings:\n"
            "  Button 1:\n"
            "    type: mute\n"
            "    dial: Dial 1\n"
        )

        config = load_config(path)

        assert config.source_path == path
        assert config.button_binding("Button 1") is not None

    def test_validation_error_names_field(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("input_midi: APC\noutput_midi: APC\nlong_press_timeout_ms: -1\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        assert exc_info.value.field == "long_press_timeout_ms"

    def test_source_path_not_serialized(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("input_midi: APC\noutput_midi: APC\n")

        assert "source_path" not in load_config(path).model_dump()


@pytest.mark.unit
class TestDevices:

    def test_apc_key_25_layout(self):
        device = get_device("APC Key 25 MIDI")

        assert device is APC_KEY_25
        assert device.find_button(0, 0).label == "Button 1"
        assert device.find_button(0, 98).label == "Shift"
        assert device.find_dial(0, 48).label == "Dial 1"
        assert device.button_by_label("Shift").has_led is False
        assert device.button_by_label("Button 40").led_value("AMBER") == 5

    def test_lit_buttons_exclude_unlit(self):
        labels = {b.label for b in APC_KEY_25.lit_buttons}

        assert "Button 1" in labels
        assert "Up" in labels
        assert "Shift" not in labels

    def test_unknown_device(self):
        with pytest.raises(UnknownDeviceError):
            get_device("Keystation 49")

    def test_known_devices(self):
        assert "APC Key 25 MIDI" in known_devices()

    def test_duplicate_labels_rejected(self):
        with pytest.raises(ValidationError):
            Device(name="x", buttons=[
                {"label": "A", "channel": 0, "note": 1},
                {"label": "A", "channel": 0, "note": 2},
            ])

    def test_dial_midpoint(self):
        assert APC_KEY_25.dial_by_label("Dial 1").midpoint == 63

    def test_register_device(self, monkeypatch):
        from pworch.devices import registry

        monkeypatch.setattr(registry, "_DEVICES", dict(registry._DEVICES))
        custom = Device(name="Keystation 49", buttons=[{"label": "Play", "channel": 0, "note": 1}])

        registry.register_device(custom)

        assert get_device("Keystation 49") is custom
