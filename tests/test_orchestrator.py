"""Tests for the orchestrator event loop."""

import asyncio
import json

import mido
import pytest

from conftest import make_config, mixer_items, node, source_items
from pworch.exceptions import ProcessFailureError
from pworch.midi.codec import ByteTriplet
from pworch.models.graph import LINK_TYPE
from pworch.orchestration import Orchestrator
from pworch.orchestration.events import ComponentExited, GraphSnapshot, MidiInput, TerminationSignal


class FakeComponent:
    """Watched component whose exit is driven by the test."""

    def __init__(self, component_id: str):
        self.component_id = component_id
        self.stopped = False
        self._exit: asyncio.Future = asyncio.get_running_loop().create_future()

    def exit(self, code: int = 0) -> None:
        self._exit.set_result(code)

    async def wait(self) -> int:
        code = await self._exit
        if code != 0:
            raise ProcessFailureError(self.component_id, code)
        return 0

    async def stop(self) -> None:
        self.stopped = True
        if not self._exit.done():
            self._exit.set_result(0)


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def config(state_path):
    return make_config(
        state_file=str(state_path),
        reconcile_debounce_ms=50,
        bindings={
            "Button 1": {"type": "mute", "dial": "Dial 1"},
            "Button 2": {"press": {"actions": [{"type": "midi", "events": [{"type": "program_change", "channel": 0, "program": 3}]}]}},
        },
        pipewire={"rules": [
            {"node": "synth", "on_connect": [{"type": "led::set", "button": "Button 8", "color": "RED"}]},
            {"node": "re:^firefox", "mixer_channel": "round_robin"},
        ]},
    )


@pytest.fixture
def orchestrator(context, interpreter, reconciler, surface, leds):
    return Orchestrator(context, interpreter, reconciler, surface, leds)


def fragment(*items) -> str:
    return json.dumps(list(items))


async def settle(orchestrator: Orchestrator, delay: float = 0.1) -> None:
    await asyncio.sleep(delay)
    timer = orchestrator.context.reconcile_timer
    if timer is not None:
        await timer.wait_fired()
    await orchestrator.interpreter.drain()


@pytest.mark.unit
class TestSnapshots:
    """Graph snapshots feed the debounced reconcile pass."""

    @pytest.mark.asyncio
    async def test_burst_reconciles_once(self, orchestrator, leds):
        await orchestrator.dispatch(GraphSnapshot(fragment(node(1, "synth"))))
        for i in range(7):
            await orchestrator.dispatch(GraphSnapshot(fragment(node(10 + i, f"client-{i}"))))

        assert leds.writes == []
        await settle(orchestrator)

        assert leds.triplets == [ByteTriplet(0x90, 7, 3)]

    @pytest.mark.asyncio
    async def test_quiet_period_restarts(self, orchestrator, leds):
        for i in range(4):
            await orchestrator.dispatch(GraphSnapshot(fragment(node(10 + i, f"client-{i}"))))
            await asyncio.sleep(0.03)
        await orchestrator.dispatch(GraphSnapshot(fragment(node(1, "synth"))))

        assert leds.writes == []
        await settle(orchestrator)
        assert len(leds.writes) == 1

    @pytest.mark.asyncio
    async def test_mixer_rules_applied(self, orchestrator, graph, linker):
        await orchestrator.dispatch(GraphSnapshot(fragment(*mixer_items(100), *source_items(200, "firefox"))))
        await settle(orchestrator)

        assert linker.created == [("firefox.stream:output_FL", "mixer:In 1"), ("firefox.stream:output_FR", "mixer:In 2")]

    @pytest.mark.asyncio
    async def test_malformed_fragment_skipped(self, orchestrator, graph):
        await orchestrator.dispatch(GraphSnapshot("[ {not json"))
        await orchestrator.dispatch(GraphSnapshot(fragment(node(1, "synth"))))

        assert orchestrator._exit_code is None
        assert graph.find_node("synth") is not None
        orchestrator.context.cancel_timers()

    @pytest.mark.asyncio
    async def test_broken_link_is_fatal(self, orchestrator):
        broken = {"id": 5, "type": LINK_TYPE, "info": {"props": {}}}

        await orchestrator.dispatch(GraphSnapshot(fragment(broken)))

        assert orchestrator._exit_code == 1


@pytest.mark.unit
class TestEvents:

    @pytest.mark.asyncio
    async def test_midi_routed_to_surface(self, orchestrator, sequencer):
        await orchestrator.dispatch(MidiInput(mido.Message("note_on", channel=0, note=1, velocity=127)))
        assert sequencer.commands == ["oaddev {xpc out0 3}"]

    @pytest.mark.asyncio
    async def test_signal_exits_cleanly(self, orchestrator):
        await orchestrator.dispatch(TerminationSignal("SIGTERM"))
        assert orchestrator._exit_code == 0

    @pytest.mark.asyncio
    async def test_critical_failure_sets_exit_code(self, orchestrator):
        orchestrator._on_component_exit(ComponentExited("midish", True, ProcessFailureError("midish", 3)))
        assert orchestrator._exit_code == 3

    @pytest.mark.asyncio
    async def test_unplugged_device_exits_zero(self, orchestrator):
        orchestrator._on_component_exit(ComponentExited("amidi", True))
        assert orchestrator._exit_code == 0

    @pytest.mark.asyncio
    async def test_non_critical_failure_keeps_running(self, orchestrator):
        orchestrator._on_component_exit(ComponentExited("lv2:synth", False, ProcessFailureError("lv2:synth", 1)))
        assert orchestrator._exit_code is None


@pytest.mark.integration
class TestLifecycle:
    """run() from startup to shutdown."""

    @pytest.mark.asyncio
    async def test_startup_leds(self, orchestrator, context, leds):
        context.button_colors = {"Button 3": "AMBER"}

        await orchestrator.startup()

        assert sorted(leds.triplets) == sorted([ByteTriplet(0x90, 0, 1), ByteTriplet(0x90, 2, 5)])
        assert context.button_colors == {"Button 1": "GREEN", "Button 3": "AMBER"}

    @pytest.mark.asyncio
    async def test_component_failure_ends_run(self, orchestrator, context, leds, state_path):
        sequencer = FakeComponent("midish")
        plugin = FakeComponent("lv2:synth")
        orchestrator.add_component(sequencer)
        orchestrator.add_component(plugin, critical=False)
        context.ranges["Dial 1"] = (0.0, 0.5)

        runner = asyncio.create_task(orchestrator.run(install_signals=False))
        await asyncio.sleep(0.02)
        plugin.exit(1)
        await asyncio.sleep(0.02)
        assert not runner.done()

        sequencer.exit(4)
        code = await asyncio.wait_for(runner, 1)

        assert code == 4
        assert sequencer.stopped and plugin.stopped
        assert json.loads(state_path.read_text())["ranges"] == {"Dial 1": [0.0, 0.5]}

        all_off = leds.writes[-1]
        assert len(all_off) == len(context.device.lit_buttons)
        assert all(t.b3 == 0 for t in all_off)

    @pytest.mark.asyncio
    async def test_signal_ends_run(self, orchestrator, state_path):
        orchestrator.add_component(FakeComponent("pw-dump"))
        runner = asyncio.create_task(orchestrator.run(install_signals=False))
        await asyncio.sleep(0.02)

        orchestrator.post(TerminationSignal("SIGINT"))

        assert await asyncio.wait_for(runner, 1) == 0
        assert state_path.exists()

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending_timers(self, orchestrator, context):
        await orchestrator.dispatch(GraphSnapshot(fragment(node(1, "synth"))))
        assert context.reconcile_timer.pending

        await orchestrator.shutdown()

        assert not context.reconcile_timer.pending

    @pytest.mark.asyncio
    async def test_shutdown_lets_running_reconcile_finish(self, orchestrator, context, leds, state_path):
        await orchestrator.dispatch(GraphSnapshot(fragment(node(1, "synth"))))
        timer = context.reconcile_timer
        timer.cancel()
        timer._fire()

        await orchestrator.shutdown()

        assert leds.writes[0] == [ByteTriplet(0x90, 7, 3)]
        assert json.loads(state_path.read_text())["button_colors"]["Button 8"] == "RED"

