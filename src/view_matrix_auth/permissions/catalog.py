"""Permission catalog: the read-only registry of known permissions.

A :class:`Permission` is an identifier of the form ``"<Group>.<Name>"``
with an optional ``implied_by`` parent. Parents form a forest: granting a
parent permission implicitly grants every permission below it.

The catalog is built once (see :mod:`view_matrix_auth.permissions.catalog_loader`)
and then handed to every component that needs to resolve permission ids.
Nothing in this package reaches for a global catalog.

Example
-------
::

    administer = Permission("Overall.Administer")
    read = Permission("Overall.Read", implied_by=administer)
    catalog = PermissionCatalog([administer, read])
    assert catalog.resolve("Overall.Read") is read
    assert catalog.resolve("Overall.Missing") is None
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class PermissionScope(str, Enum):
    """Where a permission applies. Only used to filter what is displayed."""

    GLOBAL = "global"
    VIEW = "view"
    ITEM = "item"


class CatalogConfigError(ValueError):
    """Raised when a permission catalog definition is inconsistent.

    Attributes
    ----------
    config_path:
        The path of the catalog file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


# ---------------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Permission:
    """A single permission.

    Permissions compare and hash by ``id`` so that two catalogs loaded from
    the same file produce interchangeable keys.

    Attributes
    ----------
    id:
        Unique identifier, e.g. ``"View.Configure"``.
    implied_by:
        The broader permission that implies this one, or ``None`` for a root.
    scopes:
        Scopes this permission is shown in.
    enabled:
        Disabled permissions are hidden from matrix listings but still
        evaluated normally.
    description:
        Free text for administrative listings.
    """

    id: str
    implied_by: Permission | None = None
    scopes: frozenset[PermissionScope] = field(
        default_factory=lambda: frozenset({PermissionScope.GLOBAL})
    )
    enabled: bool = True
    description: str = ""

    @property
    def group(self) -> str:
        """Return the group part of the id (text before the first ``.``)."""
        head, sep, _ = self.id.partition(".")
        return head if sep else ""

    @property
    def name(self) -> str:
        """Return the id without its group prefix."""
        _, sep, tail = self.id.partition(".")
        return tail if sep else self.id

    def is_contained_by(self, scope: PermissionScope) -> bool:
        return scope in self.scopes

    def ancestors(self) -> Iterator[Permission]:
        """Yield the implication chain above this permission, nearest first."""
        current = self.implied_by
        while current is not None:
            yield current
            current = current.implied_by

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Permission):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Permission({self.id!r})"

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class PermissionGroup:
    """Permissions sharing an id prefix, in declaration order."""

    name: str
    permissions: tuple[Permission, ...]

    def has_permission_contained_by(self, scope: PermissionScope) -> bool:
        return any(p.is_contained_by(scope) for p in self.permissions)


# ---------------------------------------------------------------------------
# PermissionCatalog
# ---------------------------------------------------------------------------


class PermissionCatalog:
    """Read-only lookup of permissions by id.

    Parameters
    ----------
    permissions:
        Every known permission. Parents referenced through ``implied_by``
        must be included as well.

    Raises
    ------
    CatalogConfigError
        If an id is empty or duplicated, a parent is missing from the
        catalog, or the implication graph contains a cycle.
    """

    def __init__(
        self,
        permissions: Iterable[Permission],
        config_path: str | None = None,
    ) -> None:
        self._by_id: dict[str, Permission] = {}
        for permission in permissions:
            if not permission.id:
                raise CatalogConfigError("Permission id must not be empty.", config_path)
            if permission.id in self._by_id:
                raise CatalogConfigError(
                    f"Duplicate permission id {permission.id!r}.", config_path
                )
            self._by_id[permission.id] = permission
        self._validate_forest(config_path)

    def _validate_forest(self, config_path: str | None) -> None:
        for permission in self._by_id.values():
            seen: set[str] = {permission.id}
            parent = permission.implied_by
            while parent is not None:
                if parent.id not in self._by_id:
                    raise CatalogConfigError(
                        f"Permission {permission.id!r} is implied by unknown "
                        f"permission {parent.id!r}.",
                        config_path,
                    )
                if parent.id in seen:
                    raise CatalogConfigError(
                        f"Implication cycle through {parent.id!r}.", config_path
                    )
                seen.add(parent.id)
                parent = parent.implied_by

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, permission_id: str) -> Permission | None:
        """Return the permission with ``permission_id`` or ``None``."""
        return self._by_id.get(permission_id)

    def __contains__(self, permission_id: object) -> bool:
        return permission_id in self._by_id

    def __iter__(self) -> Iterator[Permission]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    # ------------------------------------------------------------------
    # Listing helpers for administrative displays
    # ------------------------------------------------------------------

    def groups(self) -> list[PermissionGroup]:
        """Return permission groups in first-declared order."""
        grouped: dict[str, list[Permission]] = {}
        for permission in self._by_id.values():
            grouped.setdefault(permission.group, []).append(permission)
        return [PermissionGroup(name, tuple(perms)) for name, perms in grouped.items()]

    def groups_for_scope(self, scope: PermissionScope) -> list[PermissionGroup]:
        """Return the groups holding at least one permission in ``scope``."""
        return [g for g in self.groups() if g.has_permission_contained_by(scope)]

    def show_permission(self, permission: Permission, scope: PermissionScope) -> bool:
        """Return True if ``permission`` belongs in the matrix for ``scope``."""
        return permission.enabled and permission.is_contained_by(scope)
