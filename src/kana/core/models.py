"""
Data model for site containers
Container specs, bind mounts, image check records and site descriptors
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple

ARTIFACT_TYPES = ("site", "plugin", "theme")
DATABASE_ENGINES = ("mariadb", "sqlite")
MULTISITE_MODES = ("none", "subdomain", "subdirectory")


@dataclass(frozen=True)
class MountSpec:
    """A host path bound into a container"""
    source: str
    target: str
    kind: str = "bind"

    def __str__(self) -> str:
        return f"[{self.kind}] {self.source} → {self.target}"


@dataclass
class ContainerSpec:
    """Everything needed to create one container"""
    image: str
    name: str
    network: str = ""
    hostname: str = ""
    env: List[str] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)
    command: Optional[List[str]] = None
    mounts: List[MountSpec] = field(default_factory=list)
    interactive: bool = False

    def validate(self) -> Tuple[bool, str]:
        """Validate container specification"""
        if not self.image:
            return False, "Container image is required"

        if not self.name:
            return False, "Container name is required"

        targets = set()
        for mount in self.mounts:
            if not mount.source or not mount.target:
                return False, f"Mount needs both source and target: {mount}"
            if mount.target in targets:
                return False, f"Duplicate mount target: {mount.target}"
            targets.add(mount.target)

        for var in self.env:
            if "=" not in var:
                return False, f"Environment entry must be KEY=value: {var}"

        return True, ""


@dataclass
class ImageRecord:
    """When an image was last checked against its registry"""
    reference: str
    last_checked: Optional[datetime] = None
    interval_days: int = 0

    @property
    def interval(self) -> timedelta:
        return timedelta(days=self.interval_days)

    def is_due(self, now: datetime) -> bool:
        """True when a pull should be attempted"""
        if self.last_checked is None:
            return True
        return now - self.last_checked >= self.interval


@dataclass(frozen=True)
class SiteDescriptor:
    """
    Read-only description of one site for a single invocation.

    Built from settings by kana.core.config; the lifecycle layer never
    writes it back.
    """
    name: str
    working_directory: Path
    site_directory: Path
    artifact_type: str = "site"
    domain: str = ""
    php: str = "8.2"
    automatic_login: bool = False
    wp_debug: bool = False
    script_debug: bool = False
    environment: str = "local"
    multisite: str = "none"
    database: str = "mariadb"
    ssl: bool = True
    is_named_site: bool = False
    phpmyadmin: bool = False
    mailpit: bool = False
    update_interval: int = 14

    @property
    def uses_sqlite(self) -> bool:
        return self.database == "sqlite"

    @property
    def url(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.domain}"

    @property
    def database_directory(self) -> Path:
        return Path(self.site_directory) / "database"


@dataclass
class ExecResult:
    """Exit code and captured output of a finished command"""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """Combined output, stdout first"""
        return self.stdout + self.stderr

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
