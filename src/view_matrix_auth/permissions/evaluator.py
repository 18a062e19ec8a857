"""ACL evaluation over one or more grant tables.

AclEvaluator answers "does this principal hold this permission in this
table". The walk starts at the requested permission and climbs through
``implied_by`` until it finds an explicit grant or runs out of parents.
Granting a broad permission therefore grants everything below it; granting
a narrow one never grants its parents.

EvalChain is the ACL handed out by
:meth:`~view_matrix_auth.permissions.strategy.MatrixStrategy.get_acl`: an
ordered list of tables evaluated with OR semantics. An empty chain denies
everything.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from view_matrix_auth.permissions.catalog import Permission
from view_matrix_auth.permissions.grant_table import GrantTable

logger = logging.getLogger(__name__)

MAX_IMPLICATION_DEPTH = 64


class CatalogIntegrityError(RuntimeError):
    """Raised when an implication walk exceeds :data:`MAX_IMPLICATION_DEPTH`.

    This means the permission catalog is corrupt. It is not an authorization
    outcome and callers are not expected to recover from it.
    """


class AclEvaluator:
    """Stateless evaluator for a single grant table."""

    def has_permission(
        self,
        principal: str,
        permission: Permission,
        table: GrantTable,
    ) -> bool:
        return self.granting_permission(principal, permission, table) is not None

    def granting_permission(
        self,
        principal: str,
        permission: Permission,
        table: GrantTable,
    ) -> Permission | None:
        """Return the permission on the chain that grants access, if any.

        Raises
        ------
        CatalogIntegrityError
            If the chain above ``permission`` is longer than
            :data:`MAX_IMPLICATION_DEPTH`.
        """
        current: Permission | None = permission
        steps = 0
        while current is not None:
            if table.is_granted_explicit(principal, current):
                return current
            current = current.implied_by
            if current is None:
                break
            steps += 1
            if steps > MAX_IMPLICATION_DEPTH:
                raise CatalogIntegrityError(
                    f"Implication chain above {permission.id!r} exceeds "
                    f"{MAX_IMPLICATION_DEPTH} steps."
                )
        return None


# ---------------------------------------------------------------------------
# AccessDecision
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccessDecision:
    """Immutable outcome of an ACL check.

    Attributes
    ----------
    allowed:
        Whether access is granted.
    principal:
        The principal that was checked.
    permission:
        The permission that was requested.
    granted_by:
        The permission whose explicit grant allowed access (the requested
        permission or one of its ancestors), or ``None`` on denial.
    table_index:
        Position in the chain of the table that granted access, or ``None``.
    """

    allowed: bool
    principal: str
    permission: Permission
    granted_by: Permission | None = None
    table_index: int | None = None

    def __bool__(self) -> bool:
        return self.allowed


# ---------------------------------------------------------------------------
# EvalChain
# ---------------------------------------------------------------------------


class EvalChain:
    """Ordered grant tables evaluated with short-circuit OR.

    Parameters
    ----------
    tables:
        Tables to consult, most specific first.
    evaluator:
        Evaluator to apply to each table. A fresh :class:`AclEvaluator` is
        used when omitted.
    """

    def __init__(
        self,
        tables: Sequence[GrantTable],
        evaluator: AclEvaluator | None = None,
    ) -> None:
        self._tables: tuple[GrantTable, ...] = tuple(tables)
        self._evaluator = evaluator or AclEvaluator()

    @property
    def tables(self) -> tuple[GrantTable, ...]:
        return self._tables

    @property
    def denies_all(self) -> bool:
        return not self._tables

    def has_permission(self, principal: str, permission: Permission) -> bool:
        return self.check(principal, permission).allowed

    def check(self, principal: str, permission: Permission) -> AccessDecision:
        """Evaluate ``permission`` for ``principal`` against every table."""
        for index, table in enumerate(self._tables):
            granted_by = self._evaluator.granting_permission(principal, permission, table)
            if granted_by is not None:
                logger.debug(
                    "ACL ALLOW: principal=%s permission=%s via=%s table=%d",
                    principal,
                    permission.id,
                    granted_by.id,
                    index,
                )
                return AccessDecision(
                    allowed=True,
                    principal=principal,
                    permission=permission,
                    granted_by=granted_by,
                    table_index=index,
                )

        logger.debug(
            "ACL DENY: principal=%s permission=%s tables=%d",
            principal,
            permission.id,
            len(self._tables),
        )
        return AccessDecision(allowed=False, principal=principal, permission=permission)

    def __repr__(self) -> str:
        return f"EvalChain(tables={len(self._tables)})"
