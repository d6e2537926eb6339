"""
Bind mount planning for WordPress containers
Decides which host directories are bound where, based on what is being developed
"""

import os
from pathlib import Path
from typing import List

from .errors import MountPrepFailure
from .models import MountSpec, SiteDescriptor
from ..utils.logger import get_module_logger

logger = get_module_logger("mounts")

DIR_PERMISSIONS = 0o750

DOCUMENT_ROOT = "/var/www/html"
WP_CONTENT = f"{DOCUMENT_ROOT}/wp-content"
SITE_DATA_TARGET = "/Site"
DATABASE_TARGET = "/var/lib/mysql"

# Artifact types that are bound into wp-content, and the directory they go in
ARTIFACT_DIRECTORIES = {
    "plugin": "plugins",
    "theme": "themes",
}


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) for binding, raising MountPrepFailure on error"""
    path = Path(path)
    if path.exists():
        if not path.is_dir():
            raise MountPrepFailure(str(path), "path exists but is not a directory")
        return path

    try:
        os.makedirs(path, mode=DIR_PERMISSIONS, exist_ok=True)
    except OSError as e:
        raise MountPrepFailure(str(path), str(e)) from e

    logger.debug("Created mount directory %s", path)
    return path


def app_directory(site: SiteDescriptor) -> Path:
    """
    Host directory holding the WordPress install for a site

    A site bound to the current directory serves it directly, or keeps core
    in a wordpress/ subdirectory when the directory is a plugin or theme.
    Named sites keep everything under their site directory.
    """
    if site.is_named_site:
        directory = Path(site.site_directory) / "wordpress"
    elif site.artifact_type == "site":
        directory = Path(site.working_directory)
    else:
        directory = Path(site.working_directory) / "wordpress"

    return ensure_directory(directory)


def artifact_target(artifact_type: str, name: str) -> str:
    """In-container path where a plugin or theme is bound"""
    return f"{WP_CONTENT}/{ARTIFACT_DIRECTORIES[artifact_type]}/{name}"


def plan_mounts(site: SiteDescriptor, app_dir: Path) -> List[MountSpec]:
    """
    Bind mounts for the WordPress and wp-cli containers

    Always binds the WordPress directory to the document root and the site
    directory to /Site (used for database import and export). A plugin or
    theme also gets the working directory bound into wp-content under the
    site name; its placeholder directory is created in app_dir first.
    """
    app_dir = ensure_directory(app_dir)
    site_dir = ensure_directory(site.site_directory)

    mounts = [
        MountSpec(source=str(app_dir), target=DOCUMENT_ROOT),
        MountSpec(source=str(site_dir), target=SITE_DATA_TARGET),
    ]

    subdirectory = ARTIFACT_DIRECTORIES.get(site.artifact_type)
    if subdirectory:
        ensure_directory(app_dir / "wp-content" / subdirectory / site.name)
        mounts.append(MountSpec(
            source=str(site.working_directory),
            target=artifact_target(site.artifact_type, site.name),
        ))

    return mounts


def plan_database_mounts(site: SiteDescriptor) -> List[MountSpec]:
    """The database container keeps its data under the site directory"""
    database_dir = ensure_directory(site.database_directory)
    return [MountSpec(source=str(database_dir), target=DATABASE_TARGET)]


def infer_artifact_type(mounts: List[MountSpec]) -> str:
    """
    Work out what a running WordPress container was started for from its mounts
    Returns "plugin", "theme", or "" when neither is bound
    """
    for mount in mounts:
        for artifact_type, subdirectory in ARTIFACT_DIRECTORIES.items():
            if mount.target.startswith(f"{WP_CONTENT}/{subdirectory}/"):
                return artifact_type
    return ""
