"""
Docker operations for kana
Handles all Docker API interactions: networks, images, containers and exec
"""

import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import docker
import requests
from docker.types import Mount

from .engine import EngineAvailabilityGuard
from .errors import (
    ContainerCreateFailure,
    ContainerExecFailure,
    EngineOperationFailure,
    ImagePullFailure,
    NetworkCreateFailure,
)
from .images import ImageFreshnessCache
from .models import ContainerSpec, ExecResult, MountSpec
from ..utils.logger import get_module_logger

logger = get_module_logger("docker")

API_ERRORS = (docker.errors.APIError, requests.exceptions.ConnectionError)

DEFAULT_STOP_TIMEOUT = 10  # seconds


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def build_run_params(spec: ContainerSpec) -> dict:
    """Translate a ContainerSpec into docker SDK containers.run() keyword arguments"""
    params = {
        "name": spec.name,
        "detach": True,
        "environment": list(spec.env),
        "labels": dict(spec.labels),
        "mounts": [
            Mount(target=m.target, source=m.source, type=m.kind)
            for m in spec.mounts
        ],
    }
    if spec.network:
        params["network"] = spec.network
    if spec.hostname:
        params["hostname"] = spec.hostname
    if spec.command is not None:
        params["command"] = list(spec.command)
    return params


def _mount_flag(mount: MountSpec) -> str:
    fields = [f"type={mount.kind}", f"source={mount.source}", f"target={mount.target}"]
    # --mount is parsed as CSV
    return ",".join(
        '"{}"'.format(field.replace('"', '""')) if "," in field or '"' in field else field
        for field in fields
    )


def build_attached_args(spec: ContainerSpec) -> List[str]:
    """Docker CLI argv running spec in the foreground with the terminal attached"""
    args = ["docker", "run", "--interactive", "--tty", "--name", spec.name]
    if spec.network:
        args += ["--network", spec.network]
    if spec.hostname:
        args += ["--hostname", spec.hostname]
    for var in spec.env:
        args += ["--env", var]
    for key, value in spec.labels.items():
        args += ["--label", f"{key}={value}"]
    for mount in spec.mounts:
        args += ["--mount", _mount_flag(mount)]
    args.append(spec.image)
    if spec.command is not None:
        args += list(spec.command)
    return args


class ContainerController:
    """
    Idempotent container operations against one Docker daemon.

    Containers are always looked up by name; no container objects are kept
    between calls. The Docker client comes from the availability guard, so
    the first operation is the one that checks Docker is up.
    """

    def __init__(
        self,
        guard: EngineAvailabilityGuard,
        cache_file: Path,
        update_interval: int = 14,
        stop_timeout: int = DEFAULT_STOP_TIMEOUT,
        images: Optional[ImageFreshnessCache] = None,
        terminal: Callable[[List[str]], subprocess.CompletedProcess] = subprocess.run,
    ):
        self.guard = guard
        self.update_interval = update_interval
        self.stop_timeout = stop_timeout
        self.images = images or ImageFreshnessCache(cache_file, self.pull_image)
        self.terminal = terminal

    @property
    def client(self):
        return self.guard.ensure_available()

    def pull_image(self, reference: str):
        """Pull an image unconditionally"""
        try:
            self.client.images.pull(reference)
        except (docker.errors.ImageNotFound, docker.errors.NotFound) as e:
            raise ImagePullFailure(reference, "image not found") from e
        except API_ERRORS as e:
            raise ImagePullFailure(reference, str(e)) from e

    def ensure_image(self, reference: str) -> bool:
        """Pull an image when its update interval has elapsed"""
        return self.images.ensure_image(reference, self.update_interval)

    def ensure_network(self, name: str) -> Tuple[str, bool]:
        """
        Create a bridge network if it is missing
        Returns: (network_id: str, created: bool)
        """
        client = self.client
        try:
            network = client.networks.get(name)
            logger.debug("Network %s already exists", name)
            return network.id, False
        except docker.errors.NotFound:
            pass
        except API_ERRORS as e:
            raise NetworkCreateFailure(name, str(e)) from e

        try:
            network = client.networks.create(name, driver="bridge")
        except docker.errors.APIError as e:
            # Another invocation may have created it in the meantime
            if e.status_code != 409:
                raise NetworkCreateFailure(name, str(e)) from e
            try:
                return client.networks.get(name).id, False
            except API_ERRORS as lookup_error:
                raise NetworkCreateFailure(name, str(lookup_error)) from lookup_error
        except requests.exceptions.ConnectionError as e:
            raise NetworkCreateFailure(name, str(e)) from e

        logger.info("Created network %s", name)
        return network.id, True

    def get_container(self, name: str):
        """Return the container with this name, or None"""
        try:
            return self.client.containers.get(name)
        except docker.errors.NotFound:
            return None
        except API_ERRORS as e:
            raise EngineOperationFailure("inspect", name, str(e)) from e

    def exists(self, name: str) -> bool:
        return self.get_container(name) is not None

    def _prepare(self, spec: ContainerSpec):
        valid, error = spec.validate()
        if not valid:
            raise ContainerCreateFailure(spec.name or spec.image, error)

        self.ensure_image(spec.image)

        if self.exists(spec.name):
            logger.info("Removing stale container %s", spec.name)
            self.remove(spec.name)

    def run(self, spec: ContainerSpec):
        """
        Create and start a detached container from spec.

        A container already holding spec.name is removed first, so running
        the same site twice leaves exactly one container behind.
        """
        self._prepare(spec)

        logger.info("Starting container %s (%s)", spec.name, spec.image)
        try:
            return self.client.containers.run(spec.image, **build_run_params(spec))
        except API_ERRORS as e:
            raise ContainerCreateFailure(spec.name, str(e)) from e

    def run_and_clean(self, spec: ContainerSpec) -> Tuple[int, str]:
        """
        Run a short-lived container to completion and remove it

        The container is removed whether or not the command succeeded. A
        failed removal is logged and does not affect the returned result.

        An interactive spec runs in the foreground through the docker CLI
        with this process's terminal attached; its output goes straight to
        the terminal and the returned output is empty.

        Returns: (exit_code: int, output: str)
        """
        if spec.interactive:
            return self._run_attached(spec)

        container = self.run(spec)
        try:
            try:
                result = container.wait()
                output = _decode(container.logs(stdout=True, stderr=True))
            except API_ERRORS as e:
                raise ContainerExecFailure(spec.name, str(e)) from e
        finally:
            try:
                container.remove(force=True)
            except API_ERRORS as e:
                logger.warning("Could not remove container %s: %s", spec.name, e)

        exit_code = int(result.get("StatusCode", 1))
        logger.debug("Container %s exited with %d", spec.name, exit_code)
        return exit_code, output

    def _run_attached(self, spec: ContainerSpec) -> Tuple[int, str]:
        self._prepare(spec)

        logger.info("Running container %s (%s) attached to the terminal", spec.name, spec.image)
        try:
            completed = self.terminal(build_attached_args(spec))
        except OSError as e:
            raise ContainerExecFailure(spec.name, f"could not run the docker CLI: {e}") from e
        finally:
            try:
                self.remove(spec.name)
            except EngineOperationFailure as e:
                logger.warning("Could not remove container %s: %s", spec.name, e)

        logger.debug("Container %s exited with %d", spec.name, completed.returncode)
        return completed.returncode, ""

    def exec(self, name: str, as_root: bool, command: List[str]) -> ExecResult:
        """Run a command inside a running container"""
        container = self.get_container(name)
        if container is None:
            raise ContainerExecFailure(name, "container does not exist")
        if container.status != "running":
            raise ContainerExecFailure(name, f"container is {container.status}")

        logger.debug("Exec in %s%s: %s", name, " as root" if as_root else "", command)
        try:
            result = container.exec_run(
                command,
                user="root" if as_root else "",
                demux=True,
            )
        except API_ERRORS as e:
            raise ContainerExecFailure(name, str(e)) from e

        stdout, stderr = result.output if result.output else (None, None)
        return ExecResult(
            exit_code=result.exit_code if result.exit_code is not None else 0,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

    def stop(self, name: str) -> bool:
        """
        Stop a container
        Returns: True if a container was stopped, False if there was none
        """
        container = self.get_container(name)
        if container is None:
            logger.debug("Container %s not found, nothing to stop", name)
            return False

        try:
            container.stop(timeout=self.stop_timeout)
        except docker.errors.NotFound:
            return False
        except API_ERRORS as e:
            raise EngineOperationFailure("stop", name, str(e)) from e

        logger.info("Stopped container %s", name)
        return True

    def remove(self, name: str) -> bool:
        """
        Remove a container, stopping it if needed
        Returns: True if a container was removed, False if there was none
        """
        container = self.get_container(name)
        if container is None:
            return False

        try:
            container.remove(force=True)
        except docker.errors.NotFound:
            return False
        except API_ERRORS as e:
            raise EngineOperationFailure("remove", name, str(e)) from e

        logger.debug("Removed container %s", name)
        return True

    def get_mounts(self, name: str) -> List[MountSpec]:
        """Mounts of an existing container; empty if the container is missing"""
        container = self.get_container(name)
        if container is None:
            return []

        mounts = []
        for mount in container.attrs.get("Mounts", []) or []:
            mounts.append(MountSpec(
                source=mount.get("Source", ""),
                target=mount.get("Destination", ""),
                kind=mount.get("Type", "bind"),
            ))
        return mounts
