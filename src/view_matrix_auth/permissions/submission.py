"""Builds a grant table from a submitted configuration form.

The form arrives as already-decoded JSON::

    {
        "blocksInheritance": {},            # present and not null -> True
        "data": {
            "alice": {"View.Read": true, "View.Configure": false},
            "developers": {"View.Read": true}
        }
    }

The whole submission is validated before any grant is recorded. A single
bad entry rejects the submission and no table is returned.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from view_matrix_auth.permissions.catalog import Permission, PermissionCatalog
from view_matrix_auth.permissions.grant_table import GrantTable

logger = logging.getLogger(__name__)


class GrantSubmissionError(ValueError):
    """Raised when submitted grant data is malformed.

    Attributes
    ----------
    field:
        Name of the form field that failed validation.
    """

    def __init__(self, message: str, field: str = "data") -> None:
        self.field = field
        super().__init__(message)


class GrantSubmissionParser:
    """Validates form submissions against a permission catalog."""

    def __init__(self, catalog: PermissionCatalog) -> None:
        self._catalog = catalog

    def parse(self, form_data: Mapping[str, object]) -> GrantTable:
        """Return a new grant table built from ``form_data``.

        Raises
        ------
        GrantSubmissionError
            If ``data`` is not a mapping, a per-principal block is not a
            mapping, a principal is empty, a flag is not a boolean, or a
            permission id is unknown.
        """
        if not isinstance(form_data, Mapping):
            raise GrantSubmissionError(f"not an object: {form_data!r}", "form")

        blocks_inheritance = form_data.get("blocksInheritance") is not None

        data = form_data.get("data", {})
        if not isinstance(data, Mapping):
            raise GrantSubmissionError(f"not an object: {data!r}", "data")

        grants: list[tuple[Permission, str]] = []
        for principal, block in data.items():
            if not isinstance(principal, str) or not principal:
                raise GrantSubmissionError(f"invalid principal: {principal!r}", "data")
            if not isinstance(block, Mapping):
                raise GrantSubmissionError(
                    f"not an object for {principal!r}: {block!r}", "data"
                )
            for permission_id, flag in block.items():
                if not isinstance(flag, bool):
                    raise GrantSubmissionError(
                        f"not a boolean for {principal!r}/{permission_id!r}: {flag!r}",
                        "data",
                    )
                permission = self._catalog.resolve(str(permission_id))
                if permission is None:
                    raise GrantSubmissionError(
                        f"no such permission: {permission_id!r}", "data"
                    )
                if flag:
                    grants.append((permission, principal))

        table = GrantTable(blocks_inheritance=blocks_inheritance)
        for permission, principal in grants:
            table.grant(permission, principal)

        logger.info(
            "Parsed grant submission: %d grants for %d principals (blocks_inheritance=%s)",
            len(table),
            len(table.groups()),
            blocks_inheritance,
        )
        return table
