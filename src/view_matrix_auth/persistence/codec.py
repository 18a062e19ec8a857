"""Grant table codec.

A grant table is persisted as an ordered list of tagged records::

    blocksInheritance: "true"               (optional, first)
    permission: "<permissionId>:<principal>"   (zero or more)

Older releases persisted the table as a plain field dump instead::

    grantedPermissions: {"<permissionId>": ["<principal>", ...]}
    sids: ["<principal>", ...]
    blocksInheritance: true

Both forms decode to the same :class:`GrantTable`. The form is chosen by
peeking at the first record's tag, before anything is decoded.

Decoding never fails on bad data. Records that cannot be applied (unknown
permission, missing ``:``, unknown tag) are skipped, logged, and recorded on
the :class:`DecodeContext` so that callers can report them.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from view_matrix_auth.permissions.catalog import PermissionCatalog
from view_matrix_auth.permissions.grant_table import GrantTable

logger = logging.getLogger(__name__)

TAG_BLOCKS_INHERITANCE = "blocksInheritance"
TAG_PERMISSION = "permission"

LEGACY_TAG_GRANTED = "grantedPermissions"
LEGACY_TAG_SIDS = "sids"

_GRANT_TAGS: frozenset[str] = frozenset([TAG_BLOCKS_INHERITANCE, TAG_PERMISSION])
_TRUE_STRINGS: frozenset[str] = frozenset(["true", "yes", "1"])


class Record(NamedTuple):
    """One persisted child record: a tag and its value."""

    tag: str
    value: object


class DecodeFormat(str, Enum):
    GRANT = "grant"
    LEGACY = "legacy"


@dataclass(frozen=True)
class DecodeWarning:
    """A record that was skipped while decoding.

    Attributes
    ----------
    record:
        The offending record.
    reason:
        Why it was skipped.
    source:
        Where the record came from (e.g. ``"views.Frontend"``), if known.
    """

    record: Record
    reason: str
    source: str | None = None


@dataclass
class DecodeContext:
    """Collects non-fatal problems found while decoding."""

    warnings: list[DecodeWarning] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def add(self, record: Record, reason: str, source: str | None = None) -> None:
        self.warnings.append(DecodeWarning(record=record, reason=reason, source=source))


def detect_format(records: Sequence[Record]) -> DecodeFormat:
    """Return the encoding of ``records`` from the first distinguishing tag.

    Both encodings carry ``blocksInheritance`` and the legacy dump is
    unordered, so leading marker records are skipped. An empty sequence or
    a marker-only sequence is a table in the grant form.
    """
    for record in records:
        if record.tag == TAG_BLOCKS_INHERITANCE:
            continue
        if record.tag in _GRANT_TAGS:
            return DecodeFormat.GRANT
        return DecodeFormat.LEGACY
    return DecodeFormat.GRANT


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_STRINGS


# ---------------------------------------------------------------------------
# GrantTableCodec
# ---------------------------------------------------------------------------


class GrantTableCodec:
    """Encodes and decodes grant tables against a permission catalog."""

    def __init__(self, catalog: PermissionCatalog) -> None:
        self._catalog = catalog

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, table: GrantTable) -> list[Record]:
        """Return the records for ``table`` in a stable order."""
        records: list[Record] = []
        if table.blocks_inheritance:
            records.append(Record(TAG_BLOCKS_INHERITANCE, "true"))
        for permission, principal in table.pairs():
            records.append(Record(TAG_PERMISSION, f"{permission.id}:{principal}"))
        return records

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(
        self,
        records: Iterable[Record],
        context: DecodeContext | None = None,
        source: str | None = None,
    ) -> GrantTable:
        """Decode ``records`` into a new grant table.

        Parameters
        ----------
        records:
            Records in either the grant form or the legacy field dump.
        context:
            Receives a :class:`DecodeWarning` for every skipped record.
        source:
            Label attached to warnings and log lines.
        """
        context = context if context is not None else DecodeContext()
        records = list(records)
        if detect_format(records) is DecodeFormat.GRANT:
            return self._decode_grant_records(records, context, source)
        logger.debug("Decoding legacy field dump for %s", source or "<table>")
        return self._decode_legacy_records(records, context, source)

    def _decode_grant_records(
        self,
        records: list[Record],
        context: DecodeContext,
        source: str | None,
    ) -> GrantTable:
        table = GrantTable()
        for record in records:
            if record.tag == TAG_BLOCKS_INHERITANCE:
                table.set_blocks_inheritance(str(record.value).strip().lower() == "true")
            elif record.tag == TAG_PERMISSION:
                self._apply_short_form(table, record, context, source)
            else:
                self._skip(context, record, f"unknown record tag {record.tag!r}", source)
        return table

    def _apply_short_form(
        self,
        table: GrantTable,
        record: Record,
        context: DecodeContext,
        source: str | None,
    ) -> None:
        if not isinstance(record.value, str):
            self._skip(context, record, "grant value is not a string", source)
            return
        permission_id, sep, principal = record.value.partition(":")
        if not sep:
            self._skip(context, record, "missing ':' delimiter", source)
            return
        if not principal:
            self._skip(context, record, "empty principal", source)
            return
        permission = self._catalog.resolve(permission_id)
        if permission is None:
            self._skip(context, record, f"no such permission {permission_id!r}", source)
            return
        table.grant(permission, principal)

    def _decode_legacy_records(
        self,
        records: list[Record],
        context: DecodeContext,
        source: str | None,
    ) -> GrantTable:
        table = GrantTable()
        for record in records:
            if record.tag == TAG_BLOCKS_INHERITANCE:
                table.set_blocks_inheritance(_as_bool(record.value))
            elif record.tag == LEGACY_TAG_SIDS:
                # Derived from the grants; rebuilt by GrantTable.grant().
                continue
            elif record.tag == LEGACY_TAG_GRANTED:
                self._apply_granted_mapping(table, record, context, source)
            else:
                self._skip(context, record, f"unknown field {record.tag!r}", source)
        return table

    def _apply_granted_mapping(
        self,
        table: GrantTable,
        record: Record,
        context: DecodeContext,
        source: str | None,
    ) -> None:
        if not isinstance(record.value, Mapping):
            self._skip(context, record, "grantedPermissions is not a mapping", source)
            return
        for permission_id, principals in record.value.items():
            entry = Record(LEGACY_TAG_GRANTED, {permission_id: principals})
            permission = self._catalog.resolve(str(permission_id))
            if permission is None:
                self._skip(context, entry, f"no such permission {permission_id!r}", source)
                continue
            if isinstance(principals, str) or not isinstance(principals, Iterable):
                self._skip(context, entry, "principals are not a list", source)
                continue
            for principal in principals:
                if not principal:
                    self._skip(context, entry, "empty principal", source)
                    continue
                table.grant(permission, str(principal))

    def _skip(
        self,
        context: DecodeContext,
        record: Record,
        reason: str,
        source: str | None,
    ) -> None:
        logger.warning(
            "Skipping record %s=%r in %s: %s",
            record.tag,
            record.value,
            source or "<table>",
            reason,
        )
        context.add(record, reason, source)


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------


def records_to_document(records: Iterable[Record]) -> list[dict[str, object]]:
    """Return ``records`` as a list of single-key mappings for YAML output."""
    return [{record.tag: record.value} for record in records]


def records_from_document(
    document: object,
    context: DecodeContext | None = None,
    source: str | None = None,
) -> list[Record]:
    """Turn a parsed YAML node into records.

    A list of single-key mappings is the grant form. A mapping is a legacy
    field dump and each key becomes one record, in document order. List items
    that are not single-key mappings are skipped and reported on ``context``.

    Raises
    ------
    ValueError
        If ``document`` is neither a list nor a mapping.
    """
    if document is None:
        return []
    if isinstance(document, Mapping):
        return [Record(str(tag), value) for tag, value in document.items()]
    if not isinstance(document, list):
        raise ValueError(f"Expected a list of records or a mapping; got {document!r}.")

    records: list[Record] = []
    for index, item in enumerate(document):
        if not isinstance(item, Mapping) or len(item) != 1:
            logger.warning(
                "Skipping malformed record #%d in %s: %r", index, source or "<table>", item
            )
            if context is not None:
                context.add(Record("", item), "not a single-key mapping", source)
            continue
        ((tag, value),) = item.items()
        records.append(Record(str(tag), value))
    return records
