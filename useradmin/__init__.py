"""Administration helpers for user accounts of a Kubernetes-hosted Overleaf."""

from __future__ import annotations

from .actions import UserManager, UserNotFoundError
from .config import ClusterConfig, ContainerTarget, load_cluster_config, resolve_config_path
from .kubectl import CommandResult, KubectlExecutor, RemoteCommandError, ToolMissingError
from .models import Operation, UserCommand, UserRecord
from .queries import InvalidEmailError, QueryBuilder


def create_manager(config: ClusterConfig | None = None, **kwargs) -> UserManager:
    """Build a :class:`UserManager` wired to a kubectl executor for *config*."""

    return UserManager(KubectlExecutor(config or ClusterConfig()), **kwargs)


__all__ = [
    "ClusterConfig",
    "CommandResult",
    "ContainerTarget",
    "InvalidEmailError",
    "KubectlExecutor",
    "Operation",
    "QueryBuilder",
    "RemoteCommandError",
    "ToolMissingError",
    "UserCommand",
    "UserManager",
    "UserNotFoundError",
    "UserRecord",
    "create_manager",
    "load_cluster_config",
    "resolve_config_path",
]
