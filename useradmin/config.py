"""Configuration management for the Overleaf user administration console."""
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Optional

import yaml


CONFIG_ENV_VAR = "OVERLEAF_ADMIN_CONFIG"


@dataclass(frozen=True)
class ContainerTarget:
    """A deployment inside a namespace; commands run in its first ready pod."""

    namespace: str
    deployment: str

    def describe(self) -> str:
        return f"{self.namespace}/{self.deployment}"


@dataclass(frozen=True)
class ClusterConfig:
    """Where the Overleaf installation lives and how to reach it."""

    namespace: str = "overleaf"
    database_deployment: str = "deployment/mongodb"
    application_deployment: str = "deployment/overleaf"
    database_name: str = "sharelatex"
    collection: str = "users"
    web_root: str = "/overleaf/services/web"
    kubectl: str = "kubectl"
    context: Optional[str] = None
    structured_output: bool = True

    @property
    def database_target(self) -> ContainerTarget:
        return ContainerTarget(self.namespace, self.database_deployment)

    @property
    def application_target(self) -> ContainerTarget:
        return ContainerTarget(self.namespace, self.application_deployment)

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "ClusterConfig":
        """Create a :class:`ClusterConfig` from raw dictionary data."""
        known = {item.name for item in fields(ClusterConfig)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown cluster configuration fields: {', '.join(sorted(unknown))}")

        values: Dict[str, object] = {}
        for name, raw in data.items():
            if name == "structured_output":
                values[name] = bool(raw)
            elif name == "context":
                values[name] = str(raw) if raw is not None else None
            else:
                text = str(raw).strip() if raw is not None else ""
                if not text:
                    raise ValueError(f"Cluster configuration field '{name}' must not be empty")
                values[name] = text
        return ClusterConfig(**values)


def load_cluster_config(config_path: Path) -> ClusterConfig:
    """Load cluster settings from a YAML file, falling back to the defaults."""
    if not config_path.exists():
        return ClusterConfig()

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    # Allow the settings to sit under a top-level ``cluster`` key.
    section = raw.get("cluster", raw)
    if not isinstance(section, dict):
        raise ValueError("The 'cluster' section must be a mapping")
    return ClusterConfig.from_dict(section)


def resolve_config_path(value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if value:
        candidate = Path(value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "cluster.yaml").resolve(strict=False)
    return candidate


__all__ = [
    "CONFIG_ENV_VAR",
    "ClusterConfig",
    "ContainerTarget",
    "load_cluster_config",
    "resolve_config_path",
]
