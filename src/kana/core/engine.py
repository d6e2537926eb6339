"""
Docker availability check
Makes sure the Docker daemon answers before any container work starts
"""

import subprocess
import sys
import time
from typing import Any, Callable, List, Optional

import docker
import requests

from .errors import EngineUnreachable
from ..utils.logger import get_module_logger

logger = get_module_logger("engine")

DEFAULT_MAX_ATTEMPTS = 12
DEFAULT_RETRY_INTERVAL = 5  # seconds

# Platforms where Docker runs as a desktop app that can be launched on demand
LAUNCH_COMMANDS = {
    "darwin": ["open", "-a", "Docker"],
}

ENGINE_ERRORS = (docker.errors.DockerException, requests.exceptions.ConnectionError)


def _launch(argv: List[str]):
    subprocess.run(argv, check=True, capture_output=True)


class EngineAvailabilityGuard:
    """
    Owns the Docker client for one invocation.

    The first call to ensure_available() probes the daemon with a container
    listing. If that fails on a platform where Docker can be launched, the
    launcher runs once and the probe is retried every retry_interval seconds.
    The initial probe counts as the first of max_attempts.
    """

    def __init__(
        self,
        client_factory: Callable[[], Any] = docker.from_env,
        platform: str = sys.platform,
        launcher: Callable[[List[str]], Any] = _launch,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._client_factory = client_factory
        self._platform = platform
        self._launcher = launcher
        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self._sleep = sleep
        self._client = None
        self.attempts = 0

    @property
    def can_launch(self) -> bool:
        return self._platform in LAUNCH_COMMANDS

    def _probe(self) -> Optional[Exception]:
        """List containers once. Returns the failure, or None when Docker answered"""
        self.attempts += 1
        try:
            client = self._client or self._client_factory()
            client.containers.list()
        except ENGINE_ERRORS as e:
            logger.debug("Docker probe %d failed: %s", self.attempts, e)
            return e

        self._client = client
        return None

    def ensure_available(self):
        """Return a Docker client that is known to answer, or raise EngineUnreachable"""
        if self._client is not None:
            return self._client

        error = self._probe()
        if error is None:
            return self._client

        if not self.can_launch:
            raise EngineUnreachable(
                f"Could not connect to Docker. Is Docker running? ({error})"
            ) from error

        logger.info("Docker doesn't appear to be running. Trying to start Docker.")
        try:
            self._launcher(LAUNCH_COMMANDS[self._platform])
        except (OSError, subprocess.CalledProcessError) as e:
            raise EngineUnreachable("Unable to start Docker") from e

        while self.attempts < self.max_attempts:
            self._sleep(self.retry_interval)
            error = self._probe()
            if error is None:
                logger.info("Docker is running")
                return self._client

        logger.warning("Starting Docker is taking too long")
        raise EngineUnreachable(
            f"Docker did not become available after {self.attempts} attempts"
        ) from error

    @property
    def client(self):
        return self.ensure_available()
