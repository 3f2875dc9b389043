"""Services for castellan: stores, resolver, reconciler and the facade."""

from .assignments import AssignmentStore
from .authorization import AuthorizationService
from .grants import GrantStore
from .reconciler import Reconciler, SyncResult
from .resolver import Authorizer
from .roles import RoleStore

__all__ = [
    "AssignmentStore",
    "AuthorizationService",
    "Authorizer",
    "GrantStore",
    "Reconciler",
    "RoleStore",
    "SyncResult",
]
