"""
Error types raised by the container lifecycle layer

Infrastructure failures abort the current operation and carry the name of
the resource that failed. A command that exits non-zero is not an error:
its exit code is returned to the caller as data.
"""


class KanaError(Exception):
    """Base class for every error raised by kana"""


class ConfigError(KanaError):
    """Settings could not be loaded or hold an invalid value"""


class EngineUnreachable(KanaError):
    """Docker could not be reached, even after trying to launch it"""


class ImagePullFailure(KanaError):
    """An image could not be pulled"""

    def __init__(self, image: str, reason: str = ""):
        self.image = image
        message = f"Failed to pull image {image}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NetworkCreateFailure(KanaError):
    """A Docker network could not be created or inspected"""

    def __init__(self, network: str, reason: str = ""):
        self.network = network
        message = f"Failed to create network {network}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ContainerCreateFailure(KanaError):
    """A container could not be created or started"""

    def __init__(self, container: str, reason: str = ""):
        self.container = container
        message = f"Failed to create container {container}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ContainerExecFailure(KanaError):
    """A command could not be executed inside a container"""

    def __init__(self, container: str, reason: str = ""):
        self.container = container
        message = f"Failed to execute in container {container}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EngineOperationFailure(KanaError):
    """Stop, remove or inspect failed for a reason other than a missing container"""

    def __init__(self, operation: str, container: str, reason: str = ""):
        self.operation = operation
        self.container = container
        message = f"Failed to {operation} container {container}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MountPrepFailure(KanaError):
    """A host directory for a bind mount could not be created"""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Failed to prepare mount directory {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DatabaseNotReady(KanaError):
    """The database container did not accept connections before the deadline"""

    def __init__(self, container: str, timeout: float):
        self.container = container
        self.timeout = timeout
        super().__init__(
            f"Database in {container} did not accept connections within {timeout:g}s"
        )
