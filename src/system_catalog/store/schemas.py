"""Table schemas: header layout, required fields and ID prefix rules."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

ID_COLUMN = "ID"
NAME_COLUMN = "Name"
SYSTEM_ID_COLUMN = "System ID"

CREATED_BY = "Created By"
CREATED_DATE = "Created Date"
LAST_UPDATED = "Last Updated"
LAST_UPDATED_BY = "Last Updated By"

AUDIT_COLUMNS = (CREATED_DATE, CREATED_BY, LAST_UPDATED, LAST_UPDATED_BY)
# Never rewritten after creation.
IMMUTABLE_COLUMNS = frozenset({CREATED_BY, CREATED_DATE})

REQUIRED_COLUMNS = (ID_COLUMN, NAME_COLUMN)

SYSTEMS = "systems"
REQUIREMENTS = "requirements"
DOCUMENTS = "documents"


@dataclass(frozen=True)
class IdPrefixRule:
    """Maps the lower-cased value of ``column`` to a sequential ID prefix."""

    column: str
    prefixes: Mapping[str, str]

    def prefix_for(self, record: Mapping[str, object]) -> str | None:
        raw = record.get(self.column)
        if raw is None:
            return None
        return self.prefixes.get(str(raw).strip().lower())


@dataclass(frozen=True)
class TableSchema:
    name: str
    headers: tuple[str, ...]
    id_rule: IdPrefixRule | None = None

    def required_fields(self, headers: tuple[str, ...] | list[str] | None = None) -> list[str]:
        """Required columns present in ``headers`` (defaults to the schema's own)."""
        present = self.headers if headers is None else headers
        return [column for column in REQUIRED_COLUMNS if column in present]


SYSTEM_SCHEMA = TableSchema(
    name=SYSTEMS,
    headers=(
        ID_COLUMN,
        NAME_COLUMN,
        "Description",
        "Business Owner",
        "Technical Owner",
        "Overall Status",
        "Category",
        "System Type",
        "Go Live Date",
        "Goal",
        *AUDIT_COLUMNS,
    ),
    id_rule=IdPrefixRule(
        column="System Type",
        prefixes=MappingProxyType({"internal": "INT", "external": "EXT"}),
    ),
)

REQUIREMENT_SCHEMA = TableSchema(
    name=REQUIREMENTS,
    headers=(
        ID_COLUMN,
        SYSTEM_ID_COLUMN,
        "Title",
        "Type",
        "Priority",
        "Status",
        *AUDIT_COLUMNS,
    ),
    id_rule=IdPrefixRule(
        column="Type",
        prefixes=MappingProxyType({"functional": "REQ", "non-functional": "NREQ"}),
    ),
)

# Documents are keyed by System ID only and carry no ID column.
DOCUMENT_SCHEMA = TableSchema(
    name=DOCUMENTS,
    headers=(
        SYSTEM_ID_COLUMN,
        "Document Type",
        "Document Name",
        "Category",
        "Completed",
        "Reviewer",
        "Document Link",
        *AUDIT_COLUMNS,
    ),
)

GENERIC_HEADERS = (ID_COLUMN, NAME_COLUMN, "Description", "Status", *AUDIT_COLUMNS)

KNOWN_SCHEMAS: Mapping[str, TableSchema] = MappingProxyType(
    {schema.name: schema for schema in (SYSTEM_SCHEMA, REQUIREMENT_SCHEMA, DOCUMENT_SCHEMA)}
)


def schema_for(table_name: str) -> TableSchema:
    """Return the known schema for ``table_name`` or a generic one."""
    known = KNOWN_SCHEMAS.get(table_name.lower())
    if known is not None:
        return known
    return TableSchema(name=table_name, headers=GENERIC_HEADERS)
