"""Shared test fixtures for kana tests."""
from datetime import datetime, timedelta, timezone
from pathlib import Path

import docker
import pytest
from docker.models.containers import ExecResult as DockerExecResult

from kana.core.docker_ops import ContainerController
from kana.core.engine import EngineAvailabilityGuard
from kana.core.models import SiteDescriptor
from kana.core.site import SiteOrchestrator


class FakeContainer:
    """In-memory stand-in for docker.models.containers.Container"""

    def __init__(self, owner, image, name, **params):
        self.owner = owner
        self.image = image
        self.name = name
        self.params = params
        self.status = "running"
        self.removed = False
        self.exec_calls = []
        self.attrs = {
            "Mounts": [
                {"Source": m["Source"], "Destination": m["Target"], "Type": m["Type"]}
                for m in params.get("mounts", [])
            ]
        }

    @property
    def environment(self):
        return self.params.get("environment", [])

    @property
    def labels(self):
        return self.params.get("labels", {})

    def stop(self, timeout=10):
        self.status = "exited"

    def remove(self, force=False):
        if self.owner.remove_error is not None:
            raise self.owner.remove_error
        self.removed = True
        self.owner.by_name.pop(self.name, None)

    def wait(self):
        code, _ = self.owner.command_results.get(self.name, (0, b""))
        self.status = "exited"
        return {"StatusCode": code, "Error": None}

    def logs(self, stdout=True, stderr=True):
        _, output = self.owner.command_results.get(self.name, (0, b""))
        return output

    def exec_run(self, cmd, user="", demux=False):
        self.exec_calls.append((cmd, user))
        handler = self.owner.exec_handler
        if handler is not None:
            return handler(self, cmd, user)
        return DockerExecResult(0, (b"", None))


class FakeContainers:
    def __init__(self):
        self.by_name = {}
        self.created = []
        self.remove_error = None
        self.command_results = {}
        self.exec_handler = None
        self.list_calls = 0

    def get(self, name):
        if name not in self.by_name:
            raise docker.errors.NotFound(f"No such container: {name}")
        return self.by_name[name]

    def list(self, all=False, filters=None):
        self.list_calls += 1
        containers = list(self.by_name.values())
        if not all:
            containers = [c for c in containers if c.status == "running"]
        label = (filters or {}).get("label")
        if label:
            key, _, value = label.partition("=")
            containers = [c for c in containers if c.labels.get(key) == value]
        return containers

    def run(self, image, name=None, **params):
        if name in self.by_name:
            raise docker.errors.APIError(f"Conflict. The container name {name} is already in use")
        container = FakeContainer(self, image, name, **params)
        self.by_name[name] = container
        self.created.append(container)
        return container


class FakeNetworks:
    def __init__(self):
        self.by_name = {}

    def get(self, name):
        if name not in self.by_name:
            raise docker.errors.NotFound(f"network {name} not found")
        return self.by_name[name]

    def create(self, name, driver="bridge"):
        network = type("FakeNetwork", (), {"id": f"net-{name}", "name": name})()
        self.by_name[name] = network
        return network


class FakeImages:
    def __init__(self):
        self.pulled = []
        self.pull_error = None

    def pull(self, reference, tag=None):
        if self.pull_error is not None:
            raise self.pull_error
        self.pulled.append(reference)


class FakeDockerClient:
    """Implements the part of docker.DockerClient kana uses"""

    def __init__(self):
        self.containers = FakeContainers()
        self.networks = FakeNetworks()
        self.images = FakeImages()


class FixedClock:
    """Clock that only moves when told to"""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fake_client():
    return FakeDockerClient()


@pytest.fixture
def guard(fake_client):
    return EngineAvailabilityGuard(client_factory=lambda: fake_client, platform="linux")


@pytest.fixture
def controller(guard, tmp_path):
    return ContainerController(guard, cache_file=tmp_path / "app" / "images.json")


@pytest.fixture
def orchestrator(controller):
    return SiteOrchestrator(
        controller,
        platform="linux",
        sleep=lambda seconds: None,
    )


@pytest.fixture
def make_site(tmp_path):
    """Build a SiteDescriptor rooted in tmp_path"""
    def _make(**kwargs):
        defaults = {
            "name": "acme",
            "working_directory": tmp_path / "work",
            "site_directory": tmp_path / "app" / "sites" / "acme",
            "domain": "acme.sites.cfw.li",
            "php": "8.2",
        }
        defaults.update(kwargs)
        Path(defaults["working_directory"]).mkdir(parents=True, exist_ok=True)
        return SiteDescriptor(**defaults)
    return _make
