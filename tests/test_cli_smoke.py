"""Smoke tests for CLI commands.

Tests that CLI commands parse correctly and don't crash. Uses Click's
CliRunner for testing without touching real MIDI or audio hardware.
"""

import importlib
import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from pworch.cli.main import cli
from pworch.exceptions import DevicePortNotFoundError
from pworch.graph import GraphModel
from pworch.midi.amidi import RawMidiPort

# The command objects shadow their modules on the package
run_module = importlib.import_module('pworch.cli.commands.run')


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "input_midi": "APC Key 25 MIDI",
        "output_midi": "APC Key 25 MIDI",
        "bindings": {
            "Button 1": {"type": "mute", "dial": "Dial 1"},
            "Dial 1": {"type": "passthrough", "channel": 0, "controller": 7},
            "Knob 9": {"type": "passthrough", "channel": 0, "controller": 8},
        },
        "pipewire": {"rules": [{"node": "synth", "on_connect": [{"type": "config::reload"}]}]},
    }))
    return path


@pytest.mark.integration
class TestCLIHelp:
    """Test that all commands have working help text."""

    def test_main_help(self, runner):
        """Test main CLI help displays."""
        result = runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        assert 'control-surface daemon' in result.output

    def test_version_flag(self, runner):
        """Test --version flag works."""
        result = runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert '0.1.0' in result.output

    @pytest.mark.parametrize("command", [
        ['run'], ['config'], ['config', 'validate'], ['midi'], ['midi', 'decode'], ['midi', 'ports'],
        ['graph'], ['graph', 'dump'],
    ])
    def test_command_help(self, runner, command):
        result = runner.invoke(cli, command + ['--help'])
        assert result.exit_code == 0

    def test_unknown_command_shows_error(self, runner):
        result = runner.invoke(cli, ['nonexistent'])
        assert result.exit_code != 0


@pytest.mark.integration
class TestConfigCommands:

    def test_validate_ok(self, runner, config_file):
        result = runner.invoke(cli, ['config', 'validate', str(config_file)])

        assert result.exit_code == 0
        assert 'Config OK' in result.output
        assert '1 button(s), 2 dial(s)' in result.output
        assert "'Knob 9' is not a control" in result.output

    def test_validate_invalid(self, runner, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"input_midi": "APC",}')

        result = runner.invoke(cli, ['config', 'validate', str(path)])

        assert result.exit_code == 1
        assert 'ERROR: Configuration file has invalid syntax' in result.output
        assert 'Check for common syntax errors' in result.output

    def test_validate_unknown_device(self, runner, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"device": "Keystation", "input_midi": "a", "output_midi": "b"}))

        result = runner.invoke(cli, ['config', 'validate', str(path)])

        assert result.exit_code == 1
        assert "No device definition available for 'Keystation'" in result.output

    def test_validate_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ['config', 'validate', str(tmp_path / "missing.json")])
        assert result.exit_code != 0


@pytest.mark.integration
class TestMIDICommands:

    def test_decode(self, runner):
        result = runner.invoke(cli, ['midi', 'decode'], input="90 00 7F\n00 00\n\nB0 30 40\n")

        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "note_on channel=0 note=0 velocity=127 time=0",
            "note_on channel=0 note=0 velocity=0 time=0",
            "control_change channel=0 control=48 value=64 time=0",
        ]

    def test_ports(self, runner):
        ports = [RawMidiPort("IO", "hw:1,0,0", "APC Key 25 MIDI")]

        with patch('pworch.cli.commands.midi.list_ports', AsyncMock(return_value=ports)):
            result = runner.invoke(cli, ['midi', 'ports'])

        assert result.exit_code == 0
        assert 'hw:1,0,0' in result.output

    def test_ports_none(self, runner):
        with patch('pworch.cli.commands.midi.list_ports', AsyncMock(return_value=[])):
            result = runner.invoke(cli, ['midi', 'ports'])

        assert result.exit_code == 0
        assert 'No raw MIDI ports found' in result.output


@pytest.mark.integration
class TestGraphCommands:

    def test_dump(self, runner):
        from conftest import link, mixer_items, source_items

        graph = GraphModel()
        graph.ingest([*mixer_items(100, channels=1), *source_items(200, "mpv"), link(500, 200, 201, 100, 101)])

        with patch('pworch.cli.commands.graph.dump_once', AsyncMock(return_value=graph)):
            result = runner.invoke(cli, ['graph', 'dump'])

        assert result.exit_code == 0
        assert '[100] mixer (Mixer)' in result.output
        assert 'mpv.stream:output_FL -> mixer:In 1' in result.output


@pytest.mark.integration
class TestRunCommand:

    def test_startup_failure_exits_with_error(self, runner, config_file):
        error = DevicePortNotFoundError("APC Key 25 MIDI")

        with patch.object(run_module, 'run_daemon', AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ['run', str(config_file)])

        assert result.exit_code == 1
        assert "MIDI port 'APC Key 25 MIDI' not found" in result.output

    def test_exit_code_propagates(self, runner, config_file):
        with patch.object(run_module, 'run_daemon', AsyncMock(return_value=3)):
            result = runner.invoke(cli, ['run', str(config_file)])

        assert result.exit_code == 3

    def test_missing_config(self, runner, tmp_path):
        result = runner.invoke(cli, ['run', str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0
