"""Pytest fixtures and fakes for the daemon's external links."""

import asyncio
import itertools
from typing import Optional

import pytest

from pworch.core import ActionInterpreter, ControlSurface, Links, RuntimeContext
from pworch.devices import APC_KEY_25
from pworch.exceptions import ExternalCommandError
from pworch.graph import GraphModel, GraphReconciler
from pworch.models import Config
from pworch.models.graph import LINK_TYPE, NODE_TYPE, PORT_TYPE


# Graph item builders ---------------------------------------------------------


def node(node_id: int, name: str, description: Optional[str] = None, media_class: Optional[str] = None) -> dict:
    props = {"node.name": name}
    if description is not None:
        props["node.description"] = description
    if media_class is not None:
        props["media.class"] = media_class
    return {"id": node_id, "type": NODE_TYPE, "info": {"props": props}}


def port(port_id: int, node_id: int, name: str, direction: str, dsp: str = "32 bit float mono audio") -> dict:
    return {
        "id": port_id,
        "type": PORT_TYPE,
        "info": {
            "direction": direction,
            "props": {"port.name": name, "node.id": node_id, "format.dsp": dsp},
        },
    }


def link(link_id: int, out_node: int, out_port: int, in_node: int, in_port: int) -> dict:
    return {
        "id": link_id,
        "type": LINK_TYPE,
        "info": {
            "output-node-id": out_node,
            "output-port-id": out_port,
            "input-node-id": in_node,
            "input-port-id": in_port,
            "props": {
                "link.output.node": out_node,
                "link.output.port": out_port,
                "link.input.node": in_node,
                "link.input.port": in_port,
            },
        },
    }


def removed(item_id: int) -> dict:
    return {"id": item_id, "info": None}


def mixer_items(node_id: int = 100, channels: int = 2) -> list[dict]:
    """A mixer node with ``channels`` stereo pairs of input ports."""
    items = [node(node_id, "mixer", description="Mixer")]
    for i in range(channels * 2):
        items.append(port(node_id + 1 + i, node_id, f"In {i + 1}", "in"))
    return items


def source_items(node_id: int, app: str, stereo: bool = True) -> list[dict]:
    """An application output stream with FL/FR (or MONO) output ports."""
    items = [node(node_id, f"{app}.stream", media_class="Stream/Output/Audio")]
    items[0]["info"]["props"]["application.name"] = app
    names = ["output_FL", "output_FR"] if stereo else ["output_MONO"]
    for i, name in enumerate(names):
        items.append(port(node_id + 1 + i, node_id, name, "out"))
    return items


def speaker_items(node_id: int = 300) -> list[dict]:
    return [
        node(node_id, "alsa_output.pci-0000_00_1f.3.analog-stereo", description="Speakers"),
        port(node_id + 1, node_id, "playback_FL", "in"),
        port(node_id + 2, node_id, "playback_FR", "in"),
    ]


# Fakes -----------------------------------------------------------------------


class FakeLinker:
    """Records link requests and applies them to the graph like the monitor would."""

    def __init__(self, graph: Optional[GraphModel] = None, fail_with: Optional[ExternalCommandError] = None):
        self.graph = graph
        self.fail_with = fail_with
        self.calls: list[tuple[str, str, str]] = []
        self._ids = itertools.count(10_000)

    def _resolve(self, endpoint: str) -> tuple[int, int]:
        node_name, port_name = endpoint.rsplit(":", 1)
        node_item = next(n for n in self.graph.nodes if n.name == node_name)
        port_item = self.graph.find_port(node_item.id, port_name)
        return node_item.id, port_item.id

    async def create(self, src: str, dest: str) -> None:
        self.calls.append(("create", src, dest))
        if self.fail_with is not None:
            raise self.fail_with
        if self.graph is not None:
            (sn, sp), (dn, dp) = self._resolve(src), self._resolve(dest)
            self.graph.ingest([link(next(self._ids), sn, sp, dn, dp)])

    async def destroy(self, src: str, dest: str) -> None:
        self.calls.append(("destroy", src, dest))
        if self.fail_with is not None:
            raise self.fail_with
        if self.graph is not None:
            (sn, sp), (dn, dp) = self._resolve(src), self._resolve(dest)
            for item in self.graph.links:
                ids = (item.prop("link.output.port"), item.prop("link.input.port"))
                if ids == (sp, dp):
                    self.graph.ingest([removed(item.id)])

    @property
    def created(self) -> list[tuple[str, str]]:
        return [(s, d) for op, s, d in self.calls if op == "create"]

    @property
    def destroyed(self) -> list[tuple[str, str]]:
        return [(s, d) for op, s, d in self.calls if op == "destroy"]


class FakeLeds:
    def __init__(self):
        self.writes: list[list] = []

    async def send(self, triplets) -> None:
        self.writes.append([t for t in triplets if t is not None])

    @property
    def triplets(self) -> list:
        return [t for write in self.writes for t in write]


class FakeSequencer:
    def __init__(self):
        self.commands: list[str] = []

    async def send(self, *commands) -> None:
        self.commands.extend(c for c in commands if c)


class FakeChooser:
    """Returns ``choice``; blocks until ``release()`` when ``hold`` is set."""

    def __init__(self, choice: Optional[str] = None, hold: bool = False):
        self.choice = choice
        self.prompts: list[tuple[list[str], str]] = []
        self.dismissed = 0
        self._released = asyncio.Event()
        if not hold:
            self._released.set()

    def hold(self) -> None:
        self._released.clear()

    def release(self) -> None:
        self._released.set()

    async def choose(self, candidates: list[str], prompt: str) -> Optional[str]:
        self.prompts.append((candidates, prompt))
        await self._released.wait()
        return self.choice

    async def dismiss(self) -> None:
        self.dismissed += 1
        self.choice = None
        self._released.set()


class FakePlugin:
    def __init__(self):
        self.lines: list[str] = []

    async def write_line(self, line: str) -> None:
        self.lines.append(line)


class FakeProcess:
    """Stand-in for an ``asyncio.subprocess.Process`` of a shell command."""

    def __init__(self, command: str, exit_code: int = 0, stderr: bytes = b""):
        self.command = command
        self.returncode: Optional[int] = None
        self.killed = False
        self._exit_code = exit_code
        self._stderr = stderr
        self._done = asyncio.Event()

    def finish(self) -> None:
        if self.returncode is None:
            self.returncode = self._exit_code
        self._done.set()

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9
        self._done.set()

    async def communicate(self):
        await self._done.wait()
        return b"", self._stderr


class FakeSpawner:
    """Records shell commands; each one stays running until finished or killed."""

    def __init__(self, auto_finish: bool = False):
        self.auto_finish = auto_finish
        self.processes: list[FakeProcess] = []

    async def __call__(self, command: str) -> FakeProcess:
        process = FakeProcess(command)
        self.processes.append(process)
        if self.auto_finish:
            process.finish()
        return process

    @property
    def commands(self) -> list[str]:
        return [p.command for p in self.processes]


# Fixtures --------------------------------------------------------------------


def make_config(**overrides) -> Config:
    data = {"input_midi": "APC Key 25 MIDI", "output_midi": "APC Key 25 MIDI"}
    data.update(overrides)
    return Config.model_validate(data)


@pytest.fixture
def device():
    return APC_KEY_25


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def context(config, device):
    return RuntimeContext.create(config, device)


@pytest.fixture
def graph(context):
    return context.graph


@pytest.fixture
def linker(graph):
    return FakeLinker(graph)


@pytest.fixture
def reconciler(graph, linker, config):
    return GraphReconciler(graph, linker, config.mixer)


@pytest.fixture
def leds():
    return FakeLeds()


@pytest.fixture
def sequencer():
    return FakeSequencer()


@pytest.fixture
def chooser():
    return FakeChooser()


@pytest.fixture
def plugin():
    return FakePlugin()


@pytest.fixture
def spawner():
    return FakeSpawner()


@pytest.fixture
def links(leds, sequencer, chooser, plugin):
    return Links(leds=leds, sequencer=sequencer, chooser=chooser, plugins={"synth": plugin})


@pytest.fixture
def interpreter(context, reconciler, links, spawner):
    return ActionInterpreter(context, reconciler, links, spawn=spawner)


@pytest.fixture
def surface(context, interpreter):
    return ControlSurface(context, interpreter)
