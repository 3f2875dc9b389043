"""RBAC module for castellan.

This module defines the permission catalog, the implication graph, and the
in-memory checker used by the resolver.
"""

from .catalog import PermissionCatalog, PermissionDefinition, handle_value, handle_values
from .checker import PermissionChecker
from .loader import load_catalog, build_catalog, load_catalog_config
from .requests import PermissionRequest, RoleRequest

__all__ = [
    "PermissionCatalog",
    "PermissionDefinition",
    "PermissionChecker",
    "PermissionRequest",
    "RoleRequest",
    "build_catalog",
    "handle_value",
    "handle_values",
    "load_catalog",
    "load_catalog_config",
]
