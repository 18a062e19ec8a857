"""Per-resource grant table.

A GrantTable records, for one view (or for the global scope), which
principals were explicitly granted which permissions. It also carries the
``blocks_inheritance`` flag that stops evaluation from falling back to the
global table.

Tables are built once, either by the configuration-form parser or by the
codec, and then treated as read-only. Edits build a new table (see
:meth:`GrantTable.copy`) and swap it in.

Example
-------
::

    table = GrantTable()
    table.grant(view_read, "alice")
    table.grant(view_read, "alice")     # no effect
    assert table.is_granted_explicit("alice", view_read)
    assert table.all_principals() == ["alice"]
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from view_matrix_auth.permissions.catalog import Permission

ANONYMOUS = "anonymous"


class GrantTable:
    """Mapping of permission to the set of principals granted it.

    Parameters
    ----------
    granted:
        Optional initial grants. Every set is copied; later changes to the
        caller's sets do not reach the table.
    blocks_inheritance:
        When ``True`` the global table is never consulted for this resource.
    """

    def __init__(
        self,
        granted: Mapping[Permission, Iterable[str]] | None = None,
        blocks_inheritance: bool = False,
    ) -> None:
        self._granted: dict[Permission, set[str]] = {}
        self._principals: set[str] = set()
        self._blocks_inheritance = blocks_inheritance
        for permission, principals in (granted or {}).items():
            for principal in principals:
                self.grant(permission, principal)

    # ------------------------------------------------------------------
    # Mutation (configuration path only)
    # ------------------------------------------------------------------

    def grant(self, permission: Permission, principal: str) -> None:
        """Grant ``permission`` to ``principal``. Idempotent.

        Raises
        ------
        ValueError
            If ``principal`` is empty.
        """
        if not principal:
            raise ValueError("Principal must not be empty.")
        self._granted.setdefault(permission, set()).add(principal)
        self._principals.add(principal)

    def set_blocks_inheritance(self, blocks_inheritance: bool) -> None:
        self._blocks_inheritance = bool(blocks_inheritance)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def blocks_inheritance(self) -> bool:
        return self._blocks_inheritance

    def is_granted_explicit(self, principal: str, permission: Permission) -> bool:
        """Return True if ``principal`` holds exactly ``permission``.

        No implication walk happens here; see
        :class:`~view_matrix_auth.permissions.evaluator.AclEvaluator`.
        """
        principals = self._granted.get(permission)
        return principals is not None and principal in principals

    def all_granted_permissions(self) -> Mapping[Permission, frozenset[str]]:
        """Return a read-only snapshot of every grant."""
        return MappingProxyType(
            {permission: frozenset(principals) for permission, principals in self._granted.items()}
        )

    def all_principals(self) -> list[str]:
        """Return every granted principal, sorted, without ``"anonymous"``."""
        return sorted(p for p in self._principals if p != ANONYMOUS)

    def groups(self) -> frozenset[str]:
        """Return the raw aggregate principal set, ``"anonymous"`` included."""
        return frozenset(self._principals)

    def pairs(self) -> Iterator[tuple[Permission, str]]:
        """Yield ``(permission, principal)`` pairs sorted by id then principal."""
        for permission in sorted(self._granted, key=lambda p: p.id):
            for principal in sorted(self._granted[permission]):
                yield permission, principal

    def copy(self) -> GrantTable:
        return GrantTable(self._granted, blocks_inheritance=self._blocks_inheritance)

    def __len__(self) -> int:
        return sum(len(principals) for principals in self._granted.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GrantTable):
            return NotImplemented
        return (
            self._blocks_inheritance == other._blocks_inheritance
            and self._granted == other._granted
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"GrantTable(grants={len(self)}, principals={len(self._principals)}, "
            f"blocks_inheritance={self._blocks_inheritance})"
        )
