"""Link reconciliation and mixer-channel allocation on top of the graph model."""

import logging
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

from pworch.exceptions import ExternalCommandError, handle_link_error
from pworch.models.config import GraphRule, MixerSettings
from pworch.models.enums import ConnectMode
from pworch.models.graph import GraphItem, NodeAndPort
from pworch.protocols import LinkRequester

from .model import GraphModel, is_audio_port, link_key, matches_node

logger = logging.getLogger(__name__)

AUDIO_SOURCE_CLASS = "Stream/Output/Audio"

_PORT_SUFFIX_RE = re.compile(r"(\d+)$")


class LinkPair(NamedTuple):
    src_node: GraphItem
    src_port: GraphItem
    dest_node: GraphItem
    dest_port: GraphItem


@dataclass
class AudioSource:
    """An application audio stream and its output ports."""

    node: GraphItem
    ports: list[GraphItem]

    @property
    def label(self) -> str:
        return str(self.node.prop("application.name") or self.node.name or self.node.id)


@dataclass
class MixerChannel:
    """A stereo pair of mixer input ports."""

    number: int
    node: GraphItem
    ports: tuple[GraphItem, GraphItem]


def port_sort_key(port: GraphItem) -> int:
    name = port.name or ""
    match = _PORT_SUFFIX_RE.search(name)
    if match is None:
        logger.warning(f"[mixer] port '{name}' has no numeric suffix, sorting as 0")
        return 0
    return int(match.group(1))


def endpoint(node: GraphItem, port: GraphItem) -> str:
    """``node.name:port.name`` as accepted by the link tool."""
    return f"{node.name}:{port.name}"


class GraphReconciler:
    """Idempotent link operations and mixer routing.

    Requests are issued against the live graph; the graph only reflects them
    once the monitor reports the change. Until the next ingestion, identical
    create/destroy requests are not repeated.
    """

    def __init__(self, graph: GraphModel, linker: LinkRequester, mixer: Optional[MixerSettings] = None):
        self.graph = graph
        self.linker = linker
        self.mixer = mixer or MixerSettings()
        self._pending: set[tuple[str, int, int]] = set()
        self._pending_generation = graph.generation

    # Link resolution -------------------------------------------------------

    def find_link_pair(self, src: NodeAndPort, dest: NodeAndPort) -> Optional[LinkPair]:
        """Resolve both endpoints to live items (warns on the first miss)."""
        src_node = self.graph.find_node(src.node)
        if src_node is None:
            logger.warning(f"[pw-link] failed to locate src node '{src.node}'")
            return None

        dest_node = self.graph.find_node(dest.node)
        if dest_node is None:
            logger.warning(f"[pw-link] failed to locate dest node '{dest.node}'")
            return None

        src_port = self.graph.find_port(src_node.id, src.port)
        if src_port is None:
            logger.warning(f"[pw-link] failed to locate src port '{src.port}'")
            return None

        dest_port = self.graph.find_port(dest_node.id, dest.port)
        if dest_port is None:
            logger.warning(f"[pw-link] failed to locate dest port '{dest.port}'")
            return None

        return LinkPair(src_node, src_port, dest_node, dest_port)

    def is_linked(self, pair: LinkPair) -> bool:
        entry = self.graph.forward.get(link_key(pair.src_node.id, pair.src_port.id))
        return entry is not None and entry.has_destination(pair.dest_node.id, pair.dest_port.id)

    # Request issuing -------------------------------------------------------

    def _sync_pending(self) -> None:
        if self.graph.generation != self._pending_generation:
            self._pending.clear()
            self._pending_generation = self.graph.generation

    def _claim(self, op: str, pair: LinkPair) -> bool:
        """Record a request; False if an identical one is already in flight."""
        self._sync_pending()
        key = (op, pair.src_port.id, pair.dest_port.id)
        if key in self._pending:
            logger.debug(f"[pw-link] {op} {endpoint(pair.src_node, pair.src_port)} already requested")
            return False
        self._pending.add(key)
        return True

    async def _request(self, op: str, pair: LinkPair) -> bool:
        if not self._claim(op, pair):
            return False

        src = endpoint(pair.src_node, pair.src_port)
        dest = endpoint(pair.dest_node, pair.dest_port)
        try:
            if op == "create":
                await self.linker.create(src, dest)
            else:
                await self.linker.destroy(src, dest)
        except ExternalCommandError as e:
            self._pending.discard((op, pair.src_port.id, pair.dest_port.id))
            handle_link_error(e)
        return True

    async def _ensure(self, pair: LinkPair) -> bool:
        if self.is_linked(pair):
            return False
        return await self._request("create", pair)

    async def _destroy(self, pair: LinkPair) -> bool:
        if not self.is_linked(pair):
            return False
        return await self._request("destroy", pair)

    # Public link operations ------------------------------------------------

    async def ensure_link(self, src: NodeAndPort, dest: NodeAndPort) -> bool:
        """Create src -> dest unless it already exists.

        Returns:
            True if a create request was issued
        """
        pair = self.find_link_pair(src, dest)
        if pair is None:
            return False
        return await self._ensure(pair)

    async def destroy_link(self, src: NodeAndPort, dest: NodeAndPort) -> bool:
        """Remove src -> dest if it exists.

        Returns:
            True if a destroy request was issued
        """
        pair = self.find_link_pair(src, dest)
        if pair is None:
            return False
        return await self._destroy(pair)

    async def _unlink_others(self, pair: LinkPair, pattern: Optional[str] = None) -> None:
        for node, port in self.graph.links_from(pair.src_node.id, pair.src_port.id):
            if node is None or port is None:
                continue
            if node.id == pair.dest_node.id and port.id == pair.dest_port.id:
                continue
            if pattern is not None and not matches_node(node, pattern):
                continue
            await self._destroy(LinkPair(pair.src_node, pair.src_port, node, port))

    async def exclusive_link(self, src: NodeAndPort, dest: NodeAndPort) -> None:
        """Make dest the only destination of src."""
        pair = self.find_link_pair(src, dest)
        if pair is None:
            return
        await self._unlink_others(pair)
        await self._ensure(pair)

    # Mixer -----------------------------------------------------------------

    def find_mixer(self) -> Optional[GraphItem]:
        """The node whose description equals the mixer sentinel."""
        mixers = [node for node in self.graph.nodes if node.description == self.mixer.node]
        if not mixers:
            return None
        if len(mixers) > 1:
            logger.warning(f"[mixer] found {len(mixers)} nodes named '{self.mixer.node}', using id {mixers[0].id}")
        return mixers[0]

    def mixer_channels(self) -> dict[int, MixerChannel]:
        """Stereo channels of the mixer, numbered from 1 (empty without a mixer)."""
        mixer = self.find_mixer()
        if mixer is None:
            return {}

        inputs = [p for p in self.graph.ports_of(mixer.id, "in") if is_audio_port(p)]
        inputs.sort(key=port_sort_key)

        if len(inputs) % 2 != 0:
            logger.warning(f"[mixer] odd number of input ports ({len(inputs)}), dropping '{inputs[-1].name}'")
            inputs = inputs[:-1]

        return {
            i // 2 + 1: MixerChannel(i // 2 + 1, mixer, (inputs[i], inputs[i + 1]))
            for i in range(0, len(inputs), 2)
        }

    def is_channel_free(self, channel: MixerChannel) -> bool:
        """True iff no link ends at either port of the channel."""
        return all(link_key(channel.node.id, port.id) not in self.graph.reverse for port in channel.ports)

    def is_channel_requested(self, channel: MixerChannel) -> bool:
        """True if a create towards the channel is in flight (not yet in the graph)."""
        self._sync_pending()
        port_ids = {port.id for port in channel.ports}
        return any(op == "create" and dest in port_ids for op, _, dest in self._pending)

    def assigned_channel(self, source: AudioSource, channels: dict[int, MixerChannel]) -> Optional[MixerChannel]:
        """The mixer channel the source currently feeds, if any."""
        for channel in channels.values():
            for port in channel.ports:
                for node, _ in self.graph.links_to(channel.node.id, port.id):
                    if node is not None and node.id == source.node.id:
                        return channel
        return None

    def audio_clients(self) -> list[AudioSource]:
        """Application output streams with their audio output ports."""
        sources = []
        for node in self.graph.nodes:
            if node.prop("media.class") != AUDIO_SOURCE_CLASS:
                continue
            ports = sorted(
                (p for p in self.graph.ports_of(node.id, "out") if is_audio_port(p)),
                key=lambda p: p.name or "",
            )
            sources.append(AudioSource(node, ports))
        return sources

    async def connect(
        self,
        source: AudioSource,
        channel: MixerChannel,
        mode: Union[ConnectMode, str] = ConnectMode.SMART,
    ) -> None:
        """Route a source's ports to a mixer channel.

        A mono source feeds both channel ports; otherwise ports pair up in order.
        """
        mode = ConnectMode(mode)
        if not source.ports:
            logger.warning(f"[mixer] source '{source.label}' has no audio output ports")
            return

        if len(source.ports) == 1:
            pairs = [(source.ports[0], dest) for dest in channel.ports]
        else:
            pairs = list(zip(source.ports, channel.ports))

        for src_port, dest_port in pairs:
            pair = LinkPair(source.node, src_port, channel.node, dest_port)
            if mode is ConnectMode.EXCLUSIVE:
                await self._unlink_others(pair, self._exclusive_ref())
            elif mode is ConnectMode.SMART:
                await self._unlink_others(pair, self.mixer.main_output)
            await self._ensure(pair)

    def _exclusive_ref(self) -> Optional[str]:
        pattern = self.mixer.exclusive_pattern
        return f"re:{pattern}" if pattern else None

    async def auto_assign(self, rule: GraphRule) -> None:
        """Apply one mixer rule to every matching source."""
        channels = self.mixer_channels()
        sources = [s for s in self.audio_clients() if matches_node(s.node, rule.node)]
        if not channels or not sources:
            return

        target: Optional[MixerChannel] = None
        for source in sources:
            target = self.assigned_channel(source, channels)
            if target is not None:
                logger.debug(f"[mixer-reassign] '{rule.node}' already on channel {target.number}")
                break

        if target is None:
            if rule.mixer_channel == "round_robin":
                target = next(
                    (
                        ch
                        for ch in channels.values()
                        if self.is_channel_free(ch) and not self.is_channel_requested(ch)
                    ),
                    None,
                )
                if target is None:
                    logger.info(f"[mixer-assign] no free channel for '{rule.node}'")
            else:
                target = channels.get(rule.mixer_channel)
                if target is None:
                    logger.warning(f"[mixer-assign] mixer has no channel {rule.mixer_channel}")

        if target is None:
            return

        for source in sources:
            logger.debug(f"[mixer-assign] connecting '{source.label}' to channel {target.number}")
            try:
                await self.connect(source, target, rule.mixer_mode)
            except ExternalCommandError as e:
                logger.error(f"[mixer-auto-connect] {e.technical_message}")
