"""Permission checking over an already-resolved granted set.

The resolver collects what an actor holds (direct grants plus role grants);
:class:`PermissionChecker` answers questions about that set, expanding the
granted side through the catalog's implication graph. Required permissions are
never expanded.
"""

from typing import Iterable, List, Union

from .catalog import HandleLike, PermissionCatalog, handle_value, handle_values


class PermissionChecker:
    """Checks required permissions against what an actor was granted."""

    def __init__(self, granted: Iterable[str], catalog: PermissionCatalog):
        """
        Initialize with the actor's granted handles.

        Args:
            granted: Handles granted directly or through roles
            catalog: Catalog whose implication graph expands the granted set
        """
        self.granted = frozenset(granted)
        self.catalog = catalog
        self.effective = catalog.expand(self.granted)

    def has_permission(self, permission: HandleLike) -> bool:
        """Check if the granted set satisfies a single permission."""
        return handle_value(permission) in self.effective

    def has_any_permission(self, permissions: Union[HandleLike, List[HandleLike]]) -> bool:
        """Check if at least one of the given permissions is satisfied."""
        return any(self.has_permission(p) for p in handle_values(permissions))

    def has_all_permissions(self, permissions: Union[HandleLike, List[HandleLike]]) -> bool:
        """Check if every given permission is satisfied.

        An empty requirement list is not satisfied.
        """
        required = handle_values(permissions)
        if not required:
            return False
        return all(self.has_permission(p) for p in required)

    def missing(self, permissions: Union[HandleLike, List[HandleLike]]) -> List[str]:
        """Return the required permissions that are not satisfied, in order."""
        return [p for p in handle_values(permissions) if p not in self.effective]
