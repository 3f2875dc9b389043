"""Permission catalog for castellan.

Holds every registered permission handle, the actor/scope types each handle
may be granted to, and the implication graph between handles.

Handle format is free-form; the usual convention is a kebab-case verb/noun
pair:
  - view-post
  - manage-posts
  - invite-member

A catalog is an explicit object. Build one at startup, pass it to the
services that need it, and build a fresh one per test.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Union

from castellan.core.exceptions import UnregisteredPermission
from castellan.core.references import TypeRegistry

logger = logging.getLogger(__name__)

HandleLike = Union[str, Enum]


def handle_value(handle: HandleLike) -> str:
    """Normalize a handle given as a string or an Enum member."""
    if isinstance(handle, Enum):
        return str(handle.value)
    return handle


def handle_values(handles: Union[HandleLike, Iterable[HandleLike]]) -> List[str]:
    """Normalize one or many handles into a de-duplicated, ordered list."""
    if isinstance(handles, (str, Enum)):
        handles = [handles]
    return list(dict.fromkeys(handle_value(h) for h in handles))


@dataclass
class PermissionDefinition:
    """A registered permission and its eligibility rules.

    Restrictions are kept as given (tags or classes) and resolved to tags
    through ``types`` on every read, so classes registered in the morph map
    later are still recognised. Empty restrictions mean "no restriction".
    """
    handle: str
    label: Optional[str] = None
    actor_specs: FrozenSet[Any] = field(default_factory=frozenset)
    scope_specs: FrozenSet[Any] = field(default_factory=frozenset)
    types: TypeRegistry = field(default_factory=TypeRegistry, repr=False, compare=False)

    @property
    def actor_types(self) -> FrozenSet[str]:
        return frozenset(self.types.tag_for(t) for t in self.actor_specs)

    @property
    def scope_types(self) -> FrozenSet[str]:
        return frozenset(self.types.tag_for(t) for t in self.scope_specs)

    def allows_actor_type(self, actor_type: Optional[str]) -> bool:
        return actor_type is None or not self.actor_types or actor_type in self.actor_types

    def allows_scope_type(self, scope_type: Optional[str]) -> bool:
        return scope_type is None or not self.scope_types or scope_type in self.scope_types

    def __str__(self) -> str:
        return self.handle


class PermissionCatalog:
    """Registry of permission definitions and their implication graph."""

    def __init__(self, types: Optional[TypeRegistry] = None):
        self.types = types or TypeRegistry()
        self._definitions: Dict[str, PermissionDefinition] = {}
        self._implications: Dict[str, List[str]] = {}

    # ── Registration ────────────────────────────────────

    def register(
        self,
        handles: Union[HandleLike, Iterable[HandleLike], Mapping[HandleLike, Optional[str]]],
        label: Optional[str] = None,
        *,
        actor_types: Optional[Iterable[Any]] = None,
        scope_types: Optional[Iterable[Any]] = None,
    ) -> Union[PermissionDefinition, List[PermissionDefinition]]:
        """Create or overwrite one or many permission definitions.

        Args:
            handles: A handle, a list of handles, or a handle -> label mapping.
            label: Label for a single handle (ignored for mappings).
            actor_types: Eligible actor types (tags or registered classes).
            scope_types: Eligible scope types (tags or registered classes).

        Returns:
            The definition for a single handle, otherwise a list of definitions.

        Example::

            catalog.register("manage-posts", "Manage Posts", actor_types=[User])
            catalog.register({"view-post": "View Post", "edit-post": "Edit Post"})
        """
        if isinstance(handles, Mapping):
            labelled = [(handle_value(h), lbl) for h, lbl in handles.items()]
        else:
            labelled = [(h, label) for h in handle_values(handles)]

        actor_specs = self._specs(actor_types)
        scope_specs = self._specs(scope_types)

        created = []
        for handle, handle_label in labelled:
            definition = PermissionDefinition(
                handle=handle,
                label=handle_label,
                actor_specs=actor_specs,
                scope_specs=scope_specs,
                types=self.types,
            )
            self._definitions[handle] = definition
            created.append(definition)
            logger.debug(f"Registered permission {handle}")

        if len(created) == 1:
            return created[0]
        return created

    def restrict_actor_types(self, handles: Union[HandleLike, Iterable[HandleLike]], types: Iterable[Any]) -> None:
        """Limit which actor types may hold the given permission(s)."""
        specs = self._specs(types)
        for handle in handle_values(handles):
            self._require(handle).actor_specs = specs

    def restrict_scope_types(self, handles: Union[HandleLike, Iterable[HandleLike]], types: Iterable[Any]) -> None:
        """Limit which scope types the given permission(s) may be granted on."""
        specs = self._specs(types)
        for handle in handle_values(handles):
            self._require(handle).scope_specs = specs

    def implies(self, handle: HandleLike, *others: Union[HandleLike, Iterable[HandleLike]]) -> None:
        """Declare that holding ``handle`` satisfies a requirement for each of ``others``.

        Only the direct edges are stored. The transitive closure is walked at
        resolution time, so declaration order does not matter.
        """
        source = handle_value(handle)
        edges = self._implications.setdefault(source, [])
        for other in others:
            for target in handle_values(other):
                if target not in edges:
                    edges.append(target)

    def unregister(self, handle: HandleLike) -> None:
        handle = handle_value(handle)
        self._definitions.pop(handle, None)
        self._implications.pop(handle, None)

    def clear(self) -> None:
        self._definitions.clear()
        self._implications.clear()

    # ── Lookups ─────────────────────────────────────────

    def exists(self, handle: HandleLike) -> bool:
        return handle_value(handle) in self._definitions

    def get(self, handle: HandleLike) -> Optional[PermissionDefinition]:
        return self._definitions.get(handle_value(handle))

    def all(self) -> List[PermissionDefinition]:
        return list(self._definitions.values())

    def handles(self) -> List[str]:
        return list(self._definitions.keys())

    def filter(
        self,
        *,
        actor_type: Optional[Any] = None,
        scope_type: Optional[Any] = None,
        handle: Optional[Union[HandleLike, Iterable[HandleLike]]] = None,
    ) -> List[PermissionDefinition]:
        """Find definitions matching every given filter.

        Each filter takes one value or a list of values. Actor/scope filters
        match definitions whose restriction set names one of the values, so
        unrestricted permissions never match them.
        """
        results = []
        actor_tags = self._tags(actor_type) if actor_type is not None else None
        scope_tags = self._tags(scope_type) if scope_type is not None else None
        wanted = set(handle_values(handle)) if handle is not None else None

        for definition in self._definitions.values():
            if wanted is not None and definition.handle not in wanted:
                continue
            if actor_tags is not None and not (definition.actor_types & actor_tags):
                continue
            if scope_tags is not None and not (definition.scope_types & scope_tags):
                continue
            results.append(definition)
        return results

    def is_allowed_for(
        self,
        handle: HandleLike,
        actor_type: Optional[Any] = None,
        scope_type: Optional[Any] = None,
    ) -> bool:
        """Check whether a permission may be held by an actor type on a scope type.

        Fails closed: an unregistered handle is never allowed.
        """
        definition = self.get(handle)
        if definition is None:
            return False

        actor_tag = self.types.tag_for(actor_type) if actor_type is not None else None
        scope_tag = self.types.tag_for(scope_type) if scope_type is not None else None

        return definition.allows_actor_type(actor_tag) and definition.allows_scope_type(scope_tag)

    # ── Implication graph ───────────────────────────────

    def direct_implications(self, handle: HandleLike) -> FrozenSet[str]:
        """Handles declared directly on ``handle`` (no closure)."""
        return frozenset(self._implications.get(handle_value(handle), ()))

    def implied_by(self, handle: HandleLike) -> FrozenSet[str]:
        """Everything that holding ``handle`` satisfies, transitively.

        Example::

            catalog.implies("manage-posts", "edit-post")
            catalog.implies("edit-post", "view-post")
            catalog.implied_by("manage-posts")  # {"edit-post", "view-post"}
        """
        implied: Set[str] = set()
        queue = list(self._implications.get(handle_value(handle), ()))

        while queue:
            perm = queue.pop()
            if perm in implied:
                continue
            implied.add(perm)
            queue.extend(self._implications.get(perm, ()))

        return frozenset(implied)

    def expand(self, granted: Iterable[HandleLike]) -> FrozenSet[str]:
        """Return the granted handles plus every handle they imply."""
        expanded: Set[str] = set()
        for handle in handle_values(list(granted)):
            expanded.add(handle)
            expanded |= self.implied_by(handle)
        return frozenset(expanded)

    # ── Internals ───────────────────────────────────────

    def _require(self, handle: str) -> PermissionDefinition:
        definition = self._definitions.get(handle)
        if definition is None:
            raise UnregisteredPermission(handle)
        return definition

    def _specs(self, types: Optional[Any]) -> FrozenSet[Any]:
        if types is None:
            return frozenset()
        return frozenset(_as_list(types))

    def _tags(self, types: Optional[Any]) -> FrozenSet[str]:
        return frozenset(self.types.tag_for(t) for t in self._specs(types))

    def __contains__(self, handle: HandleLike) -> bool:
        return self.exists(handle)

    def __len__(self) -> int:
        return len(self._definitions)


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (str, type, Enum)):
        return [value]
    try:
        return list(value)
    except TypeError:
        return [value]
