"""Storage settings.

Backend configurations are tagged variants: `LocalBackendConfig` and
`CloudBackendConfig`. `StorageSettings` carries one of each plus the
selected tag, and `storage.factory.create_adapter` resolves the active
variant into an adapter. Settings come from a YAML file overlaid by
environment variables; the user's backend choice is persisted separately
by `SelectionStore`.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from flow_lib.storage.errors import BACKEND_UNKNOWN, StorageNotConfiguredError
from flow_lib.storage.local_adapter import DEFAULT_PREFIX
from flow_lib.storage.cloud_adapter import DEFAULT_TABLE

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("data/config/storage.yml")
DEFAULT_SELECTION_PATH = Path("data/config/storage_selection.yml")


class BackendKind(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"


def parse_backend(tag: Any) -> BackendKind:
    """Return the BackendKind for `tag`; raise StorageNotConfiguredError otherwise."""
    if isinstance(tag, BackendKind):
        return tag
    try:
        return BackendKind(str(tag).strip().lower())
    except ValueError:
        raise StorageNotConfiguredError(
            f"Unknown storage backend {tag!r}; expected one of "
            + ", ".join(k.value for k in BackendKind),
            BACKEND_UNKNOWN,
        )


@dataclass(frozen=True)
class LocalBackendConfig:
    prefix: str = DEFAULT_PREFIX
    # None selects the shared in-memory medium
    path: Optional[str] = None

    kind = BackendKind.LOCAL


@dataclass(frozen=True)
class CloudBackendConfig:
    url: Optional[str] = None
    key: Optional[str] = field(default=None, repr=False)
    table: str = DEFAULT_TABLE

    kind = BackendKind.CLOUD


BackendConfig = Union[LocalBackendConfig, CloudBackendConfig]


@dataclass(frozen=True)
class StorageSettings:
    backend: BackendKind = BackendKind.LOCAL
    local: LocalBackendConfig = field(default_factory=LocalBackendConfig)
    cloud: CloudBackendConfig = field(default_factory=CloudBackendConfig)

    def config_for(self, backend: Any) -> BackendConfig:
        kind = parse_backend(backend)
        return self.local if kind is BackendKind.LOCAL else self.cloud

    def active(self) -> BackendConfig:
        return self.config_for(self.backend)

    def with_backend(self, backend: Any) -> "StorageSettings":
        return replace(self, backend=parse_backend(backend))


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping")
    return data


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> StorageSettings:
    """Load StorageSettings from YAML and the environment.

    Environment variables win over the file:
    - FLOW_STORAGE_BACKEND: 'local' or 'cloud'
    - FLOW_LOCAL_PREFIX, FLOW_LOCAL_PATH
    - SUPABASE_URL, SUPABASE_KEY (or SUPABASE_ANON_KEY), FLOW_CLOUD_TABLE
    """
    env = os.environ if environ is None else environ
    cfg_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    raw = _read_yaml(cfg_path)
    local_raw = raw.get("local") or {}
    cloud_raw = raw.get("cloud") or {}

    local = LocalBackendConfig(
        prefix=env.get("FLOW_LOCAL_PREFIX", local_raw.get("prefix", DEFAULT_PREFIX)),
        path=env.get("FLOW_LOCAL_PATH", local_raw.get("path")),
    )
    cloud = CloudBackendConfig(
        url=env.get("SUPABASE_URL") or cloud_raw.get("url"),
        key=env.get("SUPABASE_KEY") or env.get("SUPABASE_ANON_KEY") or cloud_raw.get("key"),
        table=env.get("FLOW_CLOUD_TABLE") or cloud_raw.get("table") or DEFAULT_TABLE,
    )
    backend = parse_backend(env.get("FLOW_STORAGE_BACKEND") or raw.get("backend") or BackendKind.LOCAL)
    logger.debug("Loaded storage settings from %s (backend=%s)", cfg_path, backend.value)
    return StorageSettings(backend=backend, local=local, cloud=cloud)


class SelectionStore:
    """Persist the selected backend tag in a small YAML document."""

    def __init__(self, path: Union[str, Path] = DEFAULT_SELECTION_PATH) -> None:
        self.path = Path(path)

    def load(self) -> Optional[BackendKind]:
        try:
            data = _read_yaml(self.path)
        except (OSError, ValueError, yaml.YAMLError):
            logger.exception("Failed to read backend selection from %s", self.path)
            return None
        tag = data.get("backend")
        if not tag:
            return None
        try:
            return parse_backend(tag)
        except StorageNotConfiguredError:
            logger.warning("Ignoring unknown persisted backend %r in %s", tag, self.path)
            return None

    def save(self, backend: Any) -> None:
        kind = parse_backend(backend)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            yaml.safe_dump({"backend": kind.value}, f)
        tmp.replace(self.path)
