"""Catalog configuration loading.

Reads permission definitions and their implication edges from a YAML file
and registers them in a :class:`PermissionCatalog`.

Example file::

    permissions:
      manage-posts:
        label: Manage Posts
        actor_types: [user]
        implies: [view-post, edit-post]
      edit-post: Edit Post
      view-post: View Post
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from castellan.core.references import TypeRegistry
from .catalog import PermissionCatalog

logger = logging.getLogger(__name__)


@dataclass
class PermissionConfig:
    """Configuration for a single permission."""

    handle: str
    label: Optional[str] = None
    actor_types: List[str] = field(default_factory=list)
    scope_types: List[str] = field(default_factory=list)
    implies: List[str] = field(default_factory=list)


@dataclass
class CatalogConfig:
    """Top-level catalog configuration."""

    permissions: List[PermissionConfig] = field(default_factory=list)


def parse_permission_config(handle: str, value: Any) -> PermissionConfig:
    """Parse one permission entry.

    Args:
        handle: Permission handle (the mapping key)
        value: ``None``, a label string, or a mapping of options

    Returns:
        PermissionConfig instance
    """
    if value is None:
        return PermissionConfig(handle=handle)
    if isinstance(value, str):
        return PermissionConfig(handle=handle, label=value)
    if not isinstance(value, dict):
        raise TypeError(
            f"Permission '{handle}' must be a label or a mapping, got {type(value).__name__}"
        )

    return PermissionConfig(
        handle=handle,
        label=value.get("label"),
        actor_types=list(value.get("actor_types") or []),
        scope_types=list(value.get("scope_types") or []),
        implies=list(value.get("implies") or []),
    )


def parse_catalog_config(config_dict: Dict[str, Any]) -> CatalogConfig:
    """Parse the full catalog configuration dictionary."""
    permissions = config_dict.get("permissions") or {}
    if not isinstance(permissions, dict):
        raise TypeError(
            f"'permissions' must be a mapping, got {type(permissions).__name__}"
        )

    return CatalogConfig(
        permissions=[
            parse_permission_config(str(handle), value)
            for handle, value in permissions.items()
        ]
    )


def load_catalog_config(config_path: str) -> CatalogConfig:
    """Load catalog configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        TypeError: If the file root (or its ``permissions`` entry) isn't a mapping
        yaml.YAMLError: If the file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Catalog file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Catalog root must be a mapping, got {type(config).__name__}"
        )

    return parse_catalog_config(_expand_env_vars(config))


def build_catalog(
    config: CatalogConfig,
    catalog: Optional[PermissionCatalog] = None,
    types: Optional[TypeRegistry] = None,
) -> PermissionCatalog:
    """Register every configured permission and implication.

    Definitions are registered first and edges second, so entries may appear
    in any order in the file.
    """
    if catalog is None:
        catalog = PermissionCatalog(types=types)

    for perm in config.permissions:
        catalog.register(
            perm.handle,
            perm.label,
            actor_types=perm.actor_types,
            scope_types=perm.scope_types,
        )

    for perm in config.permissions:
        if not perm.implies:
            continue
        catalog.implies(perm.handle, perm.implies)
        for target in perm.implies:
            if not catalog.exists(target):
                logger.warning(f"Permission '{perm.handle}' implies unregistered permission '{target}'")

    logger.info(f"Loaded {len(config.permissions)} permissions into catalog")
    return catalog


def load_catalog(
    config_path: str,
    catalog: Optional[PermissionCatalog] = None,
    types: Optional[TypeRegistry] = None,
) -> PermissionCatalog:
    """Load a YAML catalog file into a (new or given) catalog."""
    return build_catalog(load_catalog_config(config_path), catalog=catalog, types=types)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
