"""Polymorphic actor/scope/tenant references.

Actors, scopes and tenants are stored as a ``(type, id)`` pair. The ``type``
is a short, stable tag (``"user"``, ``"post"``) resolved from the application's
model classes through a :class:`TypeRegistry` (the "morph map").
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple, Type, Union


class Reference(NamedTuple):
    """A typed pointer to an actor, scope or tenant."""
    type: str
    id: str

    @classmethod
    def of(cls, type_tag: str, identifier: Any) -> "Reference":
        """Build a reference, coercing the identifier to a string."""
        return cls(type_tag, str(identifier))

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"


class TypeRegistry:
    """Maps model classes to stable type tags.

    Usage::

        types = TypeRegistry()
        types.register("user", User)
        types.reference(alice)        # Reference("user", "42")
        types.tag_for(User)           # "user"
        types.tag_for("client")       # "client" (tags pass through)
    """

    def __init__(self):
        self._by_class: Dict[type, Tuple[str, str]] = {}
        self._by_tag: Dict[str, type] = {}

    def register(self, tag: str, cls: type, id_attr: str = "id") -> None:
        self._by_class[cls] = (tag, id_attr)
        self._by_tag[tag] = cls

    def class_for(self, tag: str) -> Optional[type]:
        return self._by_tag.get(tag)

    def tag_for(self, type_or_tag: Union[str, Type[Any]]) -> str:
        """Resolve a class (or a tag) to its type tag.

        Unregistered classes fall back to their qualified name so that
        restrictions and stored rows still compare consistently.
        """
        if isinstance(type_or_tag, str):
            return type_or_tag
        entry = self._lookup(type_or_tag)
        if entry:
            return entry[0]
        return f"{type_or_tag.__module__}.{type_or_tag.__qualname__}"

    def reference(self, obj: Any) -> Optional[Reference]:
        """Resolve an actor/scope/tenant object into a :class:`Reference`.

        Raises:
            TypeError: If the object's type is unknown and it does not expose
                ``reference_type``/``reference_id`` attributes.
        """
        if obj is None or isinstance(obj, Reference):
            return obj

        entry = self._lookup(type(obj))
        if entry:
            tag, id_attr = entry
            return Reference.of(tag, getattr(obj, id_attr))

        if hasattr(obj, "reference_type") and hasattr(obj, "reference_id"):
            return Reference.of(obj.reference_type, obj.reference_id)

        raise TypeError(f"Cannot resolve a type tag for {type(obj).__name__!r}; register it first")

    def _lookup(self, cls: type) -> Optional[Tuple[str, str]]:
        # Subclasses resolve to their closest registered ancestor
        for klass in getattr(cls, "__mro__", (cls,)):
            if klass in self._by_class:
                return self._by_class[klass]
        return None
