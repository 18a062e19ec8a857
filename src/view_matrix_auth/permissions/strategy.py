"""View-scoped matrix authorization strategy.

Each :class:`View` owns zero or one grant table. MatrixStrategy resolves the
ACL for a view as follows:

=====================  ========================  =================
local table            blocks_inheritance        chain
=====================  ========================  =================
present                True                      ``[local]``
present                False                     ``[local, global]``
absent                 n/a                       ``[global]``
=====================  ========================  =================

A missing global table is simply left out of the chain. If nothing is left,
the chain denies everything.

Tables are never edited in place once attached. Reconfiguration builds a new
table and swaps the reference, so a concurrent reader sees either the old or
the new table in full.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from view_matrix_auth.permissions.evaluator import AclEvaluator, EvalChain
from view_matrix_auth.permissions.grant_table import GrantTable

logger = logging.getLogger(__name__)


class ViewConfigError(ValueError):
    """Raised when a view is configured with more than one grant table."""

    def __init__(self, message: str, view_name: str | None = None) -> None:
        self.view_name = view_name
        prefix = f"[view {view_name}] " if view_name else ""
        super().__init__(f"{prefix}{message}")


# ---------------------------------------------------------------------------
# View
# ---------------------------------------------------------------------------


class View:
    """A named grouping of work items with an optional grant table."""

    def __init__(self, name: str, grant_table: GrantTable | None = None) -> None:
        if not name:
            raise ValueError("View name must not be empty.")
        self._name = name
        self._grant_table = grant_table

    @classmethod
    def from_properties(cls, name: str, properties: Iterable[object]) -> View:
        """Build a view from a heterogeneous list of attached properties.

        Properties that are not grant tables are ignored.

        Raises
        ------
        ViewConfigError
            If more than one :class:`GrantTable` is attached.
        """
        tables = [p for p in properties if isinstance(p, GrantTable)]
        if len(tables) > 1:
            raise ViewConfigError(
                f"Expected at most one grant table; found {len(tables)}.", name
            )
        return cls(name, tables[0] if tables else None)

    @property
    def name(self) -> str:
        return self._name

    @property
    def grant_table(self) -> GrantTable | None:
        return self._grant_table

    def replace_grant_table(self, grant_table: GrantTable | None) -> None:
        """Swap in a fully built table, or ``None`` to remove local grants."""
        self._grant_table = grant_table
        logger.info(
            "View %s grant table %s",
            self._name,
            "replaced" if grant_table is not None else "removed",
        )

    def __repr__(self) -> str:
        return f"View({self._name!r}, grant_table={self._grant_table!r})"


# ---------------------------------------------------------------------------
# MatrixStrategy
# ---------------------------------------------------------------------------


class MatrixStrategy:
    """Authorization strategy combining a global table with per-view tables.

    Parameters
    ----------
    global_table:
        The fallback table, or ``None`` when no global grants exist.
    views:
        Initial views. Names must be unique.
    evaluator:
        Shared evaluator handed to every resolved chain.

    Example
    -------
    ::

        strategy = MatrixStrategy(global_table=global_grants, views=[frontend])
        acl = strategy.get_acl(frontend)
        acl.has_permission("alice", view_read)
    """

    def __init__(
        self,
        global_table: GrantTable | None = None,
        views: Iterable[View] = (),
        evaluator: AclEvaluator | None = None,
    ) -> None:
        self._global_table = global_table
        self._views: dict[str, View] = {}
        self._lock = threading.Lock()
        self._evaluator = evaluator or AclEvaluator()
        for view in views:
            self.add_view(view)

    # ------------------------------------------------------------------
    # Global table
    # ------------------------------------------------------------------

    @property
    def global_table(self) -> GrantTable | None:
        return self._global_table

    def replace_global_table(self, global_table: GrantTable | None) -> None:
        self._global_table = global_table
        logger.info(
            "Global grant table %s",
            "replaced" if global_table is not None else "removed",
        )

    # ------------------------------------------------------------------
    # View registry
    # ------------------------------------------------------------------

    def add_view(self, view: View) -> None:
        """Register ``view``.

        Raises
        ------
        ValueError
            If a view with the same name is already registered.
        """
        with self._lock:
            if view.name in self._views:
                raise ValueError(f"View {view.name!r} is already registered.")
            self._views[view.name] = view

    def remove_view(self, name: str) -> View | None:
        with self._lock:
            return self._views.pop(name, None)

    def get_view(self, name: str) -> View | None:
        return self._views.get(name)

    def views(self) -> list[View]:
        """Return a snapshot of the registered views in insertion order."""
        with self._lock:
            return list(self._views.values())

    # ------------------------------------------------------------------
    # ACL resolution
    # ------------------------------------------------------------------

    def get_acl(self, view: View) -> EvalChain:
        """Resolve the evaluation chain for ``view``.

        Raises
        ------
        ValueError
            If ``view`` is ``None``.
        """
        if view is None:
            raise ValueError("get_acl() requires a view; got None.")

        local = view.grant_table
        global_table = self._global_table

        tables: list[GrantTable] = []
        if local is not None:
            tables.append(local)
            if not local.blocks_inheritance and global_table is not None:
                tables.append(global_table)
        elif global_table is not None:
            tables.append(global_table)

        if not tables:
            logger.debug("View %s has no grant tables; denying all", view.name)
        return EvalChain(tables, evaluator=self._evaluator)

    def get_acl_for(self, view_name: str) -> EvalChain:
        """Resolve the chain for a registered view by name.

        Raises
        ------
        KeyError
            If no view named ``view_name`` is registered.
        """
        view = self.get_view(view_name)
        if view is None:
            raise KeyError(view_name)
        return self.get_acl(view)

    def get_root_acl(self) -> EvalChain:
        """Return the chain used for checks outside any view."""
        tables = [self._global_table] if self._global_table is not None else []
        return EvalChain(tables, evaluator=self._evaluator)

    # ------------------------------------------------------------------
    # Administrative listing
    # ------------------------------------------------------------------

    def get_all_known_principals(self) -> set[str]:
        """Return every principal mentioned by the global or any view table.

        ``"anonymous"`` is left out, as in :meth:`GrantTable.all_principals`.
        """
        principals: set[str] = set()
        if self._global_table is not None:
            principals.update(self._global_table.all_principals())
        for view in self.views():
            table = view.grant_table
            if table is not None:
                principals.update(table.all_principals())
        return principals
