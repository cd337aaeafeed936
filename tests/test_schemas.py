from __future__ import annotations

from system_catalog.store.schemas import (
    DOCUMENT_SCHEMA,
    GENERIC_HEADERS,
    REQUIREMENT_SCHEMA,
    SYSTEM_SCHEMA,
    schema_for,
)


def test_known_schemas_are_case_insensitive() -> None:
    assert schema_for("systems") is SYSTEM_SCHEMA
    assert schema_for("Requirements") is REQUIREMENT_SCHEMA
    assert schema_for("documents") is DOCUMENT_SCHEMA


def test_unknown_table_uses_generic_headers() -> None:
    schema = schema_for("vendors")
    assert schema.name == "vendors"
    assert schema.headers == GENERIC_HEADERS
    assert schema.id_rule is None


def test_required_fields_follow_headers() -> None:
    assert SYSTEM_SCHEMA.required_fields() == ["ID", "Name"]
    assert REQUIREMENT_SCHEMA.required_fields() == ["ID"]
    assert DOCUMENT_SCHEMA.required_fields() == []
    assert SYSTEM_SCHEMA.required_fields(["Name", "Other"]) == ["Name"]


def test_id_prefix_rules() -> None:
    assert SYSTEM_SCHEMA.id_rule.prefix_for({"System Type": "Internal"}) == "INT"
    assert SYSTEM_SCHEMA.id_rule.prefix_for({"System Type": "external"}) == "EXT"
    assert SYSTEM_SCHEMA.id_rule.prefix_for({"System Type": "hybrid"}) is None
    assert SYSTEM_SCHEMA.id_rule.prefix_for({}) is None
    assert REQUIREMENT_SCHEMA.id_rule.prefix_for({"Type": "Non-Functional"}) == "NREQ"
    assert REQUIREMENT_SCHEMA.id_rule.prefix_for({"Type": "functional"}) == "REQ"
