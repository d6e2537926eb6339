"""
Site orchestration
Brings a site's database, WordPress and tool containers up and down, and runs
one-off wp-cli commands against it
"""

import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config import IMAGE_CACHE_NAME, TimeoutConfig
from .docker_ops import ContainerController
from .engine import EngineAvailabilityGuard
from .errors import ContainerExecFailure, DatabaseNotReady
from .models import ContainerSpec, ExecResult, MountSpec, SiteDescriptor
from .mounts import (
    DOCUMENT_ROOT,
    app_directory,
    infer_artifact_type,
    plan_database_mounts,
    plan_mounts,
)
from ..utils.container_names import (
    APPLICATION,
    COMMAND,
    DATABASE,
    MAILPIT,
    NETWORK_NAME,
    PHPMYADMIN,
    container_name,
    site_container_names,
)
from ..utils.logger import get_module_logger

logger = get_module_logger("site")

DATABASE_IMAGE = "mariadb:latest"
PHPMYADMIN_IMAGE = "phpmyadmin:latest"
MAILPIT_IMAGE = "axllent/mailpit:latest"

DB_NAME = "wordpress"
DB_USER = "wordpress"
DB_PASSWORD = "wordpress"
DB_ROOT_PASSWORD = "password"

# wp-config.php is generated by the WordPress image from the environment
GENERATED_CONFIG = "wp-config.php"

DEFAULT_DB_READY_TIMEOUT = 30  # seconds
DEFAULT_DB_POLL_INTERVAL = 1  # seconds


def application_image(site: SiteDescriptor) -> str:
    return f"wordpress:php{site.php}"


def command_image(site: SiteDescriptor) -> str:
    return f"wordpress:cli-php{site.php}"


def build_environment(site: SiteDescriptor) -> List[str]:
    """
    Environment shared by the WordPress container and wp-cli containers

    Order is fixed: marker, database block, then the optional flags, so the
    same site always yields the same list.
    """
    env = ["IS_KANA_ENVIRONMENT=true"]

    if site.uses_sqlite:
        env.append("KANA_SQLITE=true")
    else:
        env.extend([
            f"WORDPRESS_DB_HOST={container_name(site.name, DATABASE)}",
            f"WORDPRESS_DB_USER={DB_USER}",
            f"WORDPRESS_DB_PASSWORD={DB_PASSWORD}",
            f"WORDPRESS_DB_NAME={DB_NAME}",
        ])

    if site.automatic_login:
        env.append("KANA_ADMIN_LOGIN=true")

    if site.wp_debug:
        env.append("WORDPRESS_DEBUG=1")

    extra_config = ""
    if site.environment:
        extra_config += f"define( 'WP_ENVIRONMENT_TYPE', '{site.environment}' );"
    if site.script_debug:
        extra_config += "define( 'SCRIPT_DEBUG', true );"
    if extra_config:
        env.append(f"WORDPRESS_CONFIG_EXTRA={extra_config}")

    return env


def route_labels(router: str, host: str, site: str, kind: str, port: Optional[int] = None) -> Dict[str, str]:
    """Traefik labels routing host to a container over http and https"""
    host_rule = f"Host(`{host}`)"
    labels = {
        "traefik.enable": "true",
        f"traefik.http.routers.{router}-http.entrypoints": "web",
        f"traefik.http.routers.{router}-http.rule": host_rule,
        f"traefik.http.routers.{router}.entrypoints": "websecure",
        f"traefik.http.routers.{router}.rule": host_rule,
        f"traefik.http.routers.{router}.tls": "true",
        "kana.type": kind,
        "kana.site": site,
    }
    if port is not None:
        labels[f"traefik.http.services.{router}.loadbalancer.server.port"] = str(port)
    return labels


def build_labels(site: SiteDescriptor) -> Dict[str, str]:
    """Reverse proxy labels for the WordPress container"""
    return route_labels(f"wordpress-{site.name}", site.domain, site.name, "wordpress")


def database_spec(site: SiteDescriptor, mounts: List[MountSpec]) -> ContainerSpec:
    name = container_name(site.name, DATABASE)
    return ContainerSpec(
        image=DATABASE_IMAGE,
        name=name,
        network=NETWORK_NAME,
        hostname=name,
        env=[
            f"MARIADB_ROOT_PASSWORD={DB_ROOT_PASSWORD}",
            f"MARIADB_DATABASE={DB_NAME}",
            f"MARIADB_USER={DB_USER}",
            f"MARIADB_PASSWORD={DB_PASSWORD}",
        ],
        labels={"kana.type": "database", "kana.site": site.name},
        mounts=mounts,
    )


def application_spec(site: SiteDescriptor, mounts: List[MountSpec]) -> ContainerSpec:
    name = container_name(site.name, APPLICATION)
    return ContainerSpec(
        image=application_image(site),
        name=name,
        network=NETWORK_NAME,
        hostname=name,
        env=build_environment(site),
        labels=build_labels(site),
        mounts=mounts,
    )


def command_spec(
    site: SiteDescriptor,
    mounts: List[MountSpec],
    command: List[str],
    interactive: bool = False,
) -> ContainerSpec:
    """Disposable wp-cli container configured exactly like the WordPress container"""
    name = container_name(site.name, COMMAND)
    return ContainerSpec(
        image=command_image(site),
        name=name,
        network=NETWORK_NAME,
        hostname=name,
        env=build_environment(site),
        labels={"kana.site": site.name},
        command=["wp", f"--path={DOCUMENT_ROOT}", *command],
        mounts=mounts,
        interactive=interactive,
    )


def phpmyadmin_spec(site: SiteDescriptor) -> ContainerSpec:
    name = container_name(site.name, PHPMYADMIN)
    return ContainerSpec(
        image=PHPMYADMIN_IMAGE,
        name=name,
        network=NETWORK_NAME,
        hostname=name,
        env=[
            f"PMA_HOST={container_name(site.name, DATABASE)}",
            f"PMA_USER={DB_USER}",
            f"PMA_PASSWORD={DB_PASSWORD}",
        ],
        labels=route_labels(
            f"phpmyadmin-{site.name}", f"phpmyadmin-{site.domain}", site.name, "phpmyadmin", 80
        ),
    )


def mailpit_spec(site: SiteDescriptor) -> ContainerSpec:
    name = container_name(site.name, MAILPIT)
    return ContainerSpec(
        image=MAILPIT_IMAGE,
        name=name,
        network=NETWORK_NAME,
        hostname=name,
        labels=route_labels(
            f"mailpit-{site.name}", f"mailpit-{site.domain}", site.name, "mailpit", 8025
        ),
    )


class SiteOrchestrator:
    """Starts, stops and runs commands for one site at a time"""

    def __init__(
        self,
        controller: ContainerController,
        db_ready_timeout: float = DEFAULT_DB_READY_TIMEOUT,
        db_poll_interval: float = DEFAULT_DB_POLL_INTERVAL,
        platform: str = sys.platform,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.controller = controller
        self.db_ready_timeout = db_ready_timeout
        self.db_poll_interval = db_poll_interval
        self._platform = platform
        self._sleep = sleep
        self._monotonic = monotonic

    def container_specs(self, site: SiteDescriptor, app_dir: Path) -> List[ContainerSpec]:
        """Specs for every container of a site, dependencies first"""
        specs = [
            database_spec(site, plan_database_mounts(site)),
            application_spec(site, plan_mounts(site, app_dir)),
        ]
        if site.phpmyadmin:
            specs.append(phpmyadmin_spec(site))
        if site.mailpit:
            specs.append(mailpit_spec(site))
        return specs

    def start(self, site: SiteDescriptor):
        """Start all containers of a site and wait for its database"""
        self.controller.ensure_network(NETWORK_NAME)

        app_dir = app_directory(site)

        stale_config = app_dir / GENERATED_CONFIG
        if stale_config.exists():
            logger.debug("Removing %s so the container can regenerate it", stale_config)
            stale_config.unlink()

        for spec in self.container_specs(site, app_dir):
            self.controller.run(spec)

        self.wait_for_database(site)
        self.reset_file_permissions(site)
        logger.info("Site %s is running at %s", site.name, site.url)

    def stop(self, site: SiteDescriptor):
        """Stop and remove every container of a site; missing ones are skipped"""
        names = site_container_names(site.name) + [container_name(site.name, COMMAND)]
        for name in reversed(names):
            self.controller.stop(name)
            # Exited containers still hold their name, so remove them too
            self.controller.remove(name)

    def wait_for_database(self, site: SiteDescriptor):
        """Poll the database container until it accepts TCP connections"""
        name = container_name(site.name, DATABASE)
        # TCP, so the entrypoint's socket-only bootstrap server does not count
        probe = [
            "mariadb-admin", "ping",
            "--host=127.0.0.1",
            "--protocol=tcp",
            f"--user={DB_USER}",
            f"--password={DB_PASSWORD}",
            "--silent",
        ]
        deadline = self._monotonic() + self.db_ready_timeout

        while True:
            try:
                if self.controller.exec(name, False, probe).ok:
                    logger.debug("Database %s is ready", name)
                    return
            except ContainerExecFailure as e:
                logger.debug("Database %s not ready yet: %s", name, e)

            if self._monotonic() >= deadline:
                raise DatabaseNotReady(name, self.db_ready_timeout)
            self._sleep(self.db_poll_interval)

    def reset_file_permissions(self, site: SiteDescriptor):
        """Give www-data ownership of the document root where bind mounts don't map users"""
        if self._platform.startswith("linux"):
            return

        self.controller.exec(
            container_name(site.name, APPLICATION),
            True,
            ["chown", "-R", "www-data:www-data", DOCUMENT_ROOT],
        )

    def resolve_artifact_type(self, site: SiteDescriptor) -> SiteDescriptor:
        """Use the artifact type the running WordPress container was started with"""
        mounts = self.controller.get_mounts(container_name(site.name, APPLICATION))
        artifact_type = infer_artifact_type(mounts)
        if artifact_type and artifact_type != site.artifact_type:
            logger.debug("Running site %s was started as a %s", site.name, artifact_type)
            return replace(site, artifact_type=artifact_type)
        return site

    def run_command(self, site: SiteDescriptor, command: List[str], interactive: bool = False) -> Tuple[int, str]:
        """
        Run wp-cli in a disposable container
        Returns: (exit_code: int, output: str)
        """
        site = self.resolve_artifact_type(site)
        app_dir = app_directory(site)
        spec = command_spec(site, plan_mounts(site, app_dir), command, interactive)
        return self.controller.run_and_clean(spec)

    def exec(self, site: SiteDescriptor, command: List[str], as_root: bool = False) -> ExecResult:
        """Run a command in the site's running WordPress container"""
        return self.controller.exec(container_name(site.name, APPLICATION), as_root, command)


def create_orchestrator(app_dir: Path, update_interval: int = 14) -> SiteOrchestrator:
    """Wire the availability guard, image cache and controller for one invocation"""
    TimeoutConfig.log_config()
    guard = EngineAvailabilityGuard(
        max_attempts=TimeoutConfig.ENGINE_MAX_ATTEMPTS,
        retry_interval=TimeoutConfig.ENGINE_RETRY_INTERVAL,
    )
    controller = ContainerController(
        guard,
        cache_file=Path(app_dir) / IMAGE_CACHE_NAME,
        update_interval=update_interval,
        stop_timeout=TimeoutConfig.CONTAINER_STOP_TIMEOUT,
    )
    return SiteOrchestrator(
        controller,
        db_ready_timeout=TimeoutConfig.DB_READY_TIMEOUT,
        db_poll_interval=TimeoutConfig.DB_POLL_INTERVAL,
    )
