"""
Daemon orchestrator.

Merges the control-surface feed, the graph snapshot feed, the lifecycle of
every watched external component, and OS termination signals into one
event queue processed in arrival order.

Architecture:
    Orchestrator (this class)
    ├── Context: RuntimeContext shared with every component
    ├── Core: ControlSurface -> ActionInterpreter -> GraphReconciler
    ├── Links: LED output, sequencer, plugin hosts, selection prompt
    └── Feeds (watched): amidi --dump, pw-dump -m, sequencer, plugin hosts
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

import mido

from pworch.core import (
    ActionInterpreter,
    ControlSurface,
    Links,
    ResettableTimer,
    RuntimeContext,
    all_off_triplets,
    button_led_triplet,
    default_button_colors,
)
from pworch.devices import get_device
from pworch.exceptions import GraphError, ProcessFailureError
from pworch.graph import GraphReconciler, PwDumpMonitor, PwLinkRequester
from pworch.midi.aconnect import connect_midi_clients
from pworch.midi.amidi import AmidiInput, AmidiOutput, find_device_port
from pworch.midi.sequencer import SequencerProcess
from pworch.models.config import load_config
from pworch.plugins import PluginHost
from pworch.protocols import LedSink
from pworch.services import RofiChooser, dump_state, restore_state
from pworch.utils.process import SupervisedProcess

from .events import ComponentExited, Event, GraphSnapshot, MidiInput, TerminationSignal

logger = logging.getLogger(__name__)

MIDI_COMPONENT = "amidi"


class Orchestrator:
    """Runs the daemon until a fatal component exit or a termination signal."""

    def __init__(
        self,
        context: RuntimeContext,
        interpreter: ActionInterpreter,
        reconciler: GraphReconciler,
        surface: ControlSurface,
        leds: LedSink,
    ):
        self.context = context
        self.interpreter = interpreter
        self.reconciler = reconciler
        self.surface = surface
        self.leds = leds

        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._components: list[tuple[SupervisedProcess, bool]] = []
        self._watchers: list[asyncio.Task] = []
        self._exit_code: Optional[int] = None

    # Feeds -------------------------------------------------------------------

    def add_component(self, process: SupervisedProcess, critical: bool = True) -> None:
        """
        Watch an external component.

        Args:
            process: The component to start and supervise
            critical: If True, the daemon exits when the component does
        """
        self._components.append((process, critical))

    def on_midi(self, message: mido.Message) -> None:
        self._queue.put_nowait(MidiInput(message))

    def on_fragment(self, fragment: str) -> None:
        self._queue.put_nowait(GraphSnapshot(fragment))

    def post(self, event: Event) -> None:
        self._queue.put_nowait(event)

    async def _watch(self, process: SupervisedProcess, critical: bool) -> None:
        try:
            await process.wait()
        except ProcessFailureError as e:
            self.post(ComponentExited(process.component_id, critical, e))
        else:
            self.post(ComponentExited(process.component_id, critical))

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.post, TerminationSignal(sig.name))

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    # Lifecycle ---------------------------------------------------------------

    async def run(self, install_signals: bool = True) -> int:
        """
        Start every component and process events until exit.

        Returns:
            Exit code: 0 for a signal or clean exit, the failing component's
            exit code otherwise, 1 for a corrupted graph snapshot
        """
        if install_signals:
            self._install_signal_handlers()

        try:
            await self.startup()
            self._watchers = [
                asyncio.create_task(self._watch(process, critical), name=f"watch:{process.component_id}")
                for process, critical in self._components
            ]

            while self._exit_code is None:
                event = await self._queue.get()
                await self.dispatch(event)
        finally:
            await self.shutdown()
            if install_signals:
                self._remove_signal_handlers()

        return self._exit_code

    async def startup(self) -> None:
        """Show the initial LED state (defaults, overridden by restored colors)."""
        colors = {**default_button_colors(self.context.config, self.context.device), **self.context.button_colors}
        self.context.button_colors = colors

        triplets = []
        for label, color in colors.items():
            button = self.context.device.button_by_label(label)
            if button is not None:
                triplets.append(button_led_triplet(button, color))
        await self.leds.send(triplets)

    async def dispatch(self, event: Event) -> None:
        match event:
            case MidiInput(message=message):
                logger.debug(f"[midi] {message}")
                try:
                    await self.surface.handle(message)
                except Exception as e:
                    logger.error(f"[midi] error handling {message}: {e}", exc_info=True)
            case GraphSnapshot(fragment=fragment):
                self._on_snapshot(fragment)
            case ComponentExited():
                self._on_component_exit(event)
            case TerminationSignal(signal_name=name):
                logger.info(f"Got {name} signal, saving state and exiting")
                self._exit_code = 0

    def _on_snapshot(self, fragment: str) -> None:
        try:
            self.context.graph.ingest(fragment)
        except GraphError as e:
            if e.is_fatal:
                logger.error(f"[pw-dump] {e.technical_message}")
                self._exit_code = 1
            else:
                logger.error(f"[pw-dump] skipping fragment: {e.technical_message}")
            return

        timer = self.context.reconcile_timer
        if timer is None:
            timer = ResettableTimer(
                self.context.config.reconcile_debounce_ms / 1000,
                self.reconcile,
                name="reconcile",
            )
            self.context.reconcile_timer = timer
        timer.refresh()

    async def reconcile(self) -> None:
        """Evaluate hotplug and mixer rules against the current graph."""
        config = self.context.config
        actions = self.context.hotplug.evaluate(self.context.graph, config.pipewire.rules)
        await self.interpreter.execute_all(actions)

        if self.reconciler.find_mixer() is not None:
            for rule in config.mixer_rules:
                await self.reconciler.auto_assign(rule)

    def _on_component_exit(self, event: ComponentExited) -> None:
        if not event.critical:
            if event.error is not None:
                logger.error(f"Error: {event.component_id} crashed! {event.error.technical_message}")
            else:
                logger.warning(f"{event.component_id} exited")
            return

        if event.error is not None:
            logger.error(event.error.user_message)
        elif event.component_id == MIDI_COMPONENT:
            logger.warning("Device was unplugged")
        else:
            logger.info(f"{event.component_id} exited")
        self._exit_code = event.exit_code

    async def shutdown(self) -> None:
        """Persist state, turn every LED off, stop components."""
        logger.info("Shutting down")
        self.context.cancel_timers()
        if self.context.reconcile_timer is not None:
            # A reconcile pass already running finishes before state is dumped
            await self.context.reconcile_timer.wait_fired()
        self.interpreter.cancel_pending()

        dump_state(self.context)
        await self.leds.send(all_off_triplets(self.context.device))

        for process, _ in self._components:
            await process.stop()
        for task in self._watchers:
            task.cancel()
        await asyncio.gather(*self._watchers, return_exceptions=True)
        self._watchers = []


async def bootstrap(config_path: Path) -> Orchestrator:
    """
    Load configuration, resolve hardware ports, and wire every component.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ConfigurationError: If the config is invalid
        DeviceError: If the device or a MIDI port cannot be found
    """
    config = load_config(config_path)
    device = get_device(config.device)

    for source, dest in config.connections:
        await connect_midi_clients(source, dest)

    input_port = await find_device_port(config.input_midi)
    output_port = await find_device_port(config.output_midi)
    logger.info("Finished loading runtime config")

    context = RuntimeContext.create(config, device)
    restore_state(context)

    leds = AmidiOutput(output_port)
    sequencer = SequencerProcess(device=config.sequencer_device)
    plugins = {}
    for plugin in config.pipewire.plugins:
        logger.info(f"[lv2] starting plugin '{plugin.name}'")
        plugins[plugin.name] = PluginHost(plugin, config.lv2_path)

    reconciler = GraphReconciler(context.graph, PwLinkRequester(), config.mixer)
    links = Links(
        leds=leds,
        sequencer=sequencer,
        chooser=RofiChooser(theme=config.prompt_theme),
        plugins=plugins,
    )
    interpreter = ActionInterpreter(context, reconciler, links)
    surface = ControlSurface(context, interpreter)

    orchestrator = Orchestrator(context, interpreter, reconciler, surface, leds)
    orchestrator.add_component(AmidiInput(input_port, orchestrator.on_midi, component_id=MIDI_COMPONENT))
    orchestrator.add_component(PwDumpMonitor(orchestrator.on_fragment))
    orchestrator.add_component(sequencer)
    for host in plugins.values():
        orchestrator.add_component(host, critical=False)
    return orchestrator
