"""Action interpreter.

Executes one action against the shared :class:`RuntimeContext`, optionally
on behalf of an originating button (used for LED feedback).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Optional, assert_never

from pworch.exceptions import PwOrchError
from pworch.graph.reconciler import AudioSource, GraphReconciler, MixerChannel
from pworch.midi.sequencer import control_command, to_sequencer_command
from pworch.models.actions import (
    Action,
    CancelAction,
    CommandAction,
    ConfigReloadAction,
    CycleAction,
    ExclusiveLinkAction,
    LedRestoreAction,
    LedSaveAction,
    LedSetAction,
    LinkAction,
    LoadPresetAction,
    MidiAction,
    MixerSelectAction,
    MuteAction,
    RangeAction,
    ShowGuiAction,
    UnlinkAction,
)
from pworch.models.config import Config, load_config
from pworch.models.device import Button
from pworch.models.enums import ConnectMode

from .context import CommandState, Links, RuntimeContext
from .leds import button_led_triplet
from .mapping import FULL_RANGE, map_dial_value

logger = logging.getLogger(__name__)

# Minimum time between a command starting and its on_finish chain
MIN_COMMAND_RUNTIME = 0.15

PROMPT_TEXT = "select source:"

SpawnFn = Callable[[str], Awaitable[asyncio.subprocess.Process]]


async def spawn_shell(command: str) -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


class ActionInterpreter:
    """Runs actions and owns the background tasks they start."""

    def __init__(
        self,
        context: RuntimeContext,
        reconciler: GraphReconciler,
        links: Links,
        config_loader: Callable[[Path], Config] = load_config,
        spawn: SpawnFn = spawn_shell,
        min_command_runtime: float = MIN_COMMAND_RUNTIME,
    ):
        self.context = context
        self.reconciler = reconciler
        self.links = links
        self._config_loader = config_loader
        self._spawn_process = spawn
        self.min_command_runtime = min_command_runtime
        self._tasks: set[asyncio.Task] = set()

    # Background tasks ------------------------------------------------------

    def _spawn(self, coro: Awaitable, label: str) -> asyncio.Task:
        task = asyncio.ensure_future(self._guard(coro, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Awaitable, label: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except PwOrchError as e:
            logger.error(f"[{label}] {e.technical_message}")
        except Exception as e:
            logger.error(f"[{label}] {e}", exc_info=True)

    async def drain(self) -> None:
        """Wait until every background task (including ones they start) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    # Dispatch --------------------------------------------------------------

    async def execute_all(self, actions: Iterable[Action], button: Optional[Button] = None) -> None:
        """Execute actions in order; a failing action is logged and skipped."""
        for action in actions:
            try:
                await self.execute(action, button)
            except PwOrchError as e:
                logger.error(f"[action:{action.type}] {e.technical_message}")
            except Exception as e:
                logger.error(f"[action:{action.type}] {e}", exc_info=True)

    async def execute(self, action: Action, button: Optional[Button] = None) -> None:
        logger.debug(f"[action] {action.type}")
        match action:
            case CommandAction():
                await self._command(action)
            case CancelAction():
                await self._cancel(action, button)
            case MuteAction():
                await self._mute(action)
            case RangeAction():
                await self._range(action)
            case MidiAction():
                await self._midi(action)
            case LoadPresetAction():
                await self._plugin_command(action.plugin, f"preset {action.preset}")
            case ShowGuiAction():
                await self._plugin_command(action.plugin, "show")
            case LinkAction():
                self._spawn(self.reconciler.ensure_link(action.src, action.dest), "pw-link")
            case UnlinkAction():
                self._spawn(self.reconciler.destroy_link(action.src, action.dest), "pw-unlink")
            case ExclusiveLinkAction():
                self._spawn(self.reconciler.exclusive_link(action.src, action.dest), "pw-exclusive-link")
            case LedSetAction():
                await self.set_led(action.button, action.color)
            case LedSaveAction():
                self._led_save(action)
            case LedRestoreAction():
                await self._led_restore(action)
            case CycleAction():
                await self._cycle(action, button)
            case MixerSelectAction():
                self._mixer_select(action)
            case ConfigReloadAction():
                self._reload_config()
            case _:
                assert_never(action)

    # LEDs ------------------------------------------------------------------

    async def set_led(self, label: str, color: str) -> None:
        button = self.context.device.button_by_label(label)
        if button is None:
            logger.warning(f"[led-set] button '{label}' not found")
            return

        triplet = button_led_triplet(button, color)
        if triplet is None:
            return

        self.context.button_colors[label] = color
        await self.links.leds.send([triplet])

    def _led_save(self, action: LedSaveAction) -> None:
        color = self.context.button_colors.get(action.button)
        if color is None:
            logger.debug(f"[led-save] button '{action.button}' has no known color")
            return
        self.context.led_save_states[action.button] = color

    async def _led_restore(self, action: LedRestoreAction) -> None:
        color = self.context.led_save_states.get(action.button)
        if color is None:
            logger.warning(f"[led-restore] no saved color for button '{action.button}'")
            return
        await self.set_led(action.button, color)

    # Dials -----------------------------------------------------------------

    async def publish_dial(self, label: str, raw: int, force: bool = False) -> None:
        """Map a raw dial value and send it downstream unless the dial is muted."""
        binding = self.context.config.dial_binding(label)
        dial = self.context.device.dial_by_label(label)
        if binding is None or dial is None:
            logger.debug(f"[dial] '{label}' has no passthrough binding")
            return

        value = map_dial_value(
            raw,
            binding.map_function,
            self.context.ranges.get(label, FULL_RANGE),
            dial.range,
            binding.high_precision,
        )

        if self.context.mutes.get(label, False) and not force:
            logger.debug(f"[dial] '{label}' muted, not publishing {value}")
            return

        await self.links.sequencer.send(
            control_command(binding.channel, binding.controller, value, binding.high_precision)
        )

    def _last_raw(self, label: str) -> int:
        if label in self.context.dials:
            return self.context.dials[label]
        dial = self.context.device.dial_by_label(label)
        return dial.midpoint if dial else 0

    async def _mute(self, action: MuteAction) -> None:
        muted = self.context.mutes.get(action.dial, False)
        target = (not muted) if action.mute is None else action.mute
        self.context.mutes[action.dial] = target

        if target:
            binding = self.context.config.dial_binding(action.dial)
            if binding is None:
                logger.debug(f"[mute] '{action.dial}' has no passthrough binding")
                return
            await self.links.sequencer.send(
                control_command(binding.channel, binding.controller, 0, binding.high_precision)
            )
        else:
            await self.publish_dial(action.dial, self._last_raw(action.dial), force=True)

    async def _range(self, action: RangeAction) -> None:
        self.context.ranges[action.dial] = action.range
        # Republish immediately so the next dial move doesn't jump
        await self.publish_dial(action.dial, self._last_raw(action.dial))

    # MIDI / plugins --------------------------------------------------------

    async def _midi(self, action: MidiAction) -> None:
        commands = []
        for event in action.events:
            if event.type == "control_change" and event.high_precision:
                commands.append(control_command(event.channel, event.control or 0, event.value or 0, True))
            else:
                commands.append(to_sequencer_command(event.to_message()))
        await self.links.sequencer.send(*commands)

    async def _plugin_command(self, name: str, command: str) -> None:
        plugin = self.links.plugins.get(name)
        if plugin is None:
            logger.warning(f"[lv2] plugin '{name}' is not loaded")
            return
        await plugin.write_line(command)

    # Commands --------------------------------------------------------------

    async def _command(self, action: CommandAction) -> None:
        key = action.identity
        state = self.context.command_states.get(key)

        if action.cancelable and state is not None:
            if state.process is not None and state.process.returncode is None:
                logger.info(f"[cmd-exec] cancelling '{action.command}'")
                state.process.kill()
            self._finish_command(action, state)
            return

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            process = await self._spawn_process(action.command)
        except OSError as e:
            logger.error(f"[cmd-exec] failed to start '{action.command}': {e}")
            return

        state = CommandState(started=started, process=process)
        self.context.command_states[key] = state
        self._spawn(self._watch_command(action, state), "cmd-exec")

    async def _watch_command(self, action: CommandAction, state: CommandState) -> None:
        stdout, stderr = await state.process.communicate()

        current = self.context.command_states.get(action.identity)
        if current is None:
            # Already finished by a cancel
            return

        code = state.process.returncode
        if code:
            err = stderr.decode(errors="replace").strip() if stderr else ""
            logger.error(f"[cmd-exec] '{action.command}' exited with code {code}: {err}")
        elif stdout:
            logger.debug(f"[cmd-exec] {stdout.decode(errors='replace').strip()}")

        if current is not state:
            # A newer instance owns the completion
            return
        self._finish_command(action, state)

    def _finish_command(self, action: CommandAction, state: CommandState) -> None:
        self.context.command_states.pop(action.identity, None)
        elapsed = asyncio.get_running_loop().time() - state.started
        delay = max(0.0, self.min_command_runtime - elapsed)
        self._spawn(self._run_later(delay, action.on_finish), "command-on-finish")

    async def _run_later(self, delay: float, actions: list[Action]) -> None:
        if delay:
            await asyncio.sleep(delay)
        await self.execute_all(actions)

    # Cycle -----------------------------------------------------------------

    async def _cycle(self, action: CycleAction, button: Optional[Button]) -> None:
        key = action.identity
        index = (self.context.cycle_states.get(key, 0) + 1) % len(action.items)
        self.context.cycle_states[key] = index

        item = action.items[index]
        if item.color is not None and button is not None:
            await self.set_led(button.label, item.color)
        await self.execute_all(item.actions, button)

    # Selection prompt ------------------------------------------------------

    async def _cancel(self, action: CancelAction, button: Optional[Button]) -> None:
        if self.context.prompt_open:
            self._spawn(self.links.chooser.dismiss(), "cancel")
        elif action.alt is not None:
            await self.execute(action.alt, button)

    def _mixer_select(self, action: MixerSelectAction) -> None:
        if self.context.prompt_open:
            logger.debug("[mixer-select] prompt already open")
            return

        channels = self.reconciler.mixer_channels()
        if not channels:
            logger.warning("[mixer-select] no mixer found")
            return

        channel = channels.get(action.channel)
        if channel is None:
            logger.warning(f"[mixer-select] mixer channel {action.channel} not available")
            self._spawn(self.execute_all(action.on_finish), "mixer-select")
            return

        sources = {source.label: source for source in self.reconciler.audio_clients()}
        self.context.prompt_open = True
        self._spawn(self._select_source(action, channel, sources), "mixer-select")

    async def _select_source(
        self,
        action: MixerSelectAction,
        channel: MixerChannel,
        sources: dict[str, AudioSource],
    ) -> None:
        try:
            choice = await self.links.chooser.choose(list(sources), PROMPT_TEXT)
            source = sources.get(choice.strip()) if choice else None
            if source is None:
                logger.debug("[mixer-select] nothing selected")
            else:
                logger.info(f"[mixer-select] routing '{source.label}' to channel {channel.number}")
                await self.reconciler.connect(source, channel, ConnectMode.SMART)
        except PwOrchError as e:
            logger.error(f"[mixer-select] {e.technical_message}")
        finally:
            self.context.prompt_open = False
            await self.execute_all(action.on_finish)

    # Configuration ---------------------------------------------------------

    def _reload_config(self) -> None:
        path = self.context.config.source_path
        if path is None:
            logger.warning("[action-config-reload] config was not loaded from a file")
            return

        try:
            config = self._config_loader(path)
        except (PwOrchError, FileNotFoundError) as e:
            logger.error(f"[action-config-reload] Invalid config: {e}")
            return

        self.context.config = config
        self.context.hotplug.reseed(config.hotplug_nodes)
        self.reconciler.mixer = config.mixer
        logger.info("[action-config-reload] Reloaded config!")
