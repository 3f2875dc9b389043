"""FastAPI dependencies for permission checks.

The application authenticates the request and stores the principal on
``request.state.actor``; these dependencies turn castellan decisions into
401/403 responses.

Usage::

    set_catalog(catalog)

    @router.get("/posts/{post_id}", dependencies=[
        Depends(PermissionDependency("view-post", scope=lambda request: load_post(request))),
    ])
    async def show_post(post_id: int):
        ...
"""

import logging
from typing import Any, Callable, Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from castellan.core.config import get_settings
from castellan.core.rbac.catalog import HandleLike, PermissionCatalog
from castellan.core.rbac.loader import load_catalog
from castellan.db.session import SessionLocal
from castellan.services.authorization import AuthorizationService

logger = logging.getLogger(__name__)

_catalog: Optional[PermissionCatalog] = None


def set_catalog(catalog: PermissionCatalog) -> None:
    """Install the catalog built at startup."""
    global _catalog
    _catalog = catalog


def get_catalog() -> PermissionCatalog:
    """Return the process catalog, loading ``Settings.catalog_path`` on first use."""
    global _catalog
    if _catalog is None:
        catalog_path = get_settings().catalog_path
        if not catalog_path:
            raise RuntimeError(
                "Permission catalog not configured; call set_catalog() or set CASTELLAN_CATALOG_PATH"
            )
        _catalog = load_catalog(catalog_path)
        logger.info(f"Loaded permission catalog from {catalog_path}")
    return _catalog


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_actor(request: Request) -> Any:
    return getattr(request.state, "actor", None)


def get_authorization(
    request: Request,
    db: Session = Depends(get_db),
    catalog: PermissionCatalog = Depends(get_catalog),
) -> AuthorizationService:
    """Authorization service bound to this request's session and principal."""
    return AuthorizationService(db, catalog, current_actor=lambda: current_actor(request))


class PermissionDependency:
    """
    FastAPI dependency for permission checking.

    Usage:
        @router.get("/posts", dependencies=[Depends(PermissionDependency("view-post"))])
        async def list_posts():
            ...
    """

    def __init__(
        self,
        *permissions: HandleLike,
        require_all: bool = False,
        scope: Optional[Callable[[Request], Any]] = None,
    ):
        self.permissions = list(permissions)
        self.require_all = require_all
        self.scope = scope

    def __call__(
        self,
        request: Request,
        authz: AuthorizationService = Depends(get_authorization),
    ) -> bool:
        if current_actor(request) is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
            )

        scope = self.scope(request) if self.scope else None

        if self.require_all:
            has_access = authz.check_all(self.permissions, scope=scope)
        else:
            has_access = authz.check(self.permissions, scope=scope)

        if not has_access:
            perm_strs = [str(getattr(p, "value", p)) for p in self.permissions]
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {', '.join(perm_strs)}",
            )

        return True
