"""
Kana Core Package
Container lifecycle for local WordPress sites: Docker availability, image
freshness, container operations, mounts and site orchestration
"""

from .config import (
    TimeoutConfig,
    get_app_dir,
    load_settings,
    sanitize_site_name
)
from .docker_ops import ContainerController
from .engine import EngineAvailabilityGuard
from .errors import (
    KanaError,
    ConfigError,
    EngineUnreachable,
    ImagePullFailure,
    NetworkCreateFailure,
    ContainerCreateFailure,
    ContainerExecFailure,
    EngineOperationFailure,
    MountPrepFailure,
    DatabaseNotReady
)
from .images import ImageFreshnessCache, normalize_reference
from .models import (
    ContainerSpec,
    MountSpec,
    ImageRecord,
    SiteDescriptor,
    ExecResult
)
from .mounts import app_directory, plan_mounts
from .site import (
    SiteOrchestrator,
    build_environment,
    build_labels,
    create_orchestrator
)

__all__ = [
    # Config
    'TimeoutConfig',
    'get_app_dir',
    'load_settings',
    'sanitize_site_name',

    # Docker
    'EngineAvailabilityGuard',
    'ImageFreshnessCache',
    'normalize_reference',
    'ContainerController',

    # Errors
    'KanaError',
    'ConfigError',
    'EngineUnreachable',
    'ImagePullFailure',
    'NetworkCreateFailure',
    'ContainerCreateFailure',
    'ContainerExecFailure',
    'EngineOperationFailure',
    'MountPrepFailure',
    'DatabaseNotReady',

    # Models
    'ContainerSpec',
    'MountSpec',
    'ImageRecord',
    'SiteDescriptor',
    'ExecResult',

    # Sites
    'app_directory',
    'plan_mounts',
    'SiteOrchestrator',
    'build_environment',
    'build_labels',
    'create_orchestrator'
]
