"""Names and required column sets of the tables owned by the migration lineage."""

from __future__ import annotations

GLOBAL_PROPERTIES_TABLE = "resource_groups_global_properties"
RESOURCE_GROUPS_TABLE = "resource_groups"
SELECTORS_TABLE = "selectors"
EXACT_MATCH_SOURCE_SELECTORS_TABLE = "exact_match_source_selectors"

# Alembic bookkeeping table. Must differ from "alembic_version", which other
# lineages in the same database may own.
VERSION_TABLE = "resource_groups_schema_history"

# Managed tables in creation order.
MANAGED_TABLES: tuple[str, ...] = (
    GLOBAL_PROPERTIES_TABLE,
    RESOURCE_GROUPS_TABLE,
    SELECTORS_TABLE,
    EXACT_MATCH_SOURCE_SELECTORS_TABLE,
)

# Every table this lineage may create, in an order that satisfies foreign keys
# when dropping (selectors reference resource_groups).
DROP_ORDER: tuple[str, ...] = (
    GLOBAL_PROPERTIES_TABLE,
    SELECTORS_TABLE,
    RESOURCE_GROUPS_TABLE,
    EXACT_MATCH_SOURCE_SELECTORS_TABLE,
    VERSION_TABLE,
)

REQUIRED_COLUMNS: dict[str, frozenset[str]] = {
    GLOBAL_PROPERTIES_TABLE: frozenset({"name", "value"}),
    RESOURCE_GROUPS_TABLE: frozenset(
        {
            "resource_group_id",
            "name",
            "soft_memory_limit",
            "max_queued",
            "soft_concurrency_limit",
            "hard_concurrency_limit",
            "scheduling_policy",
            "scheduling_weight",
            "jmx_export",
            "soft_cpu_limit",
            "hard_cpu_limit",
            "parent",
            "environment",
        }
    ),
    SELECTORS_TABLE: frozenset(
        {
            "resource_group_id",
            "priority",
            "user_regex",
            "source_regex",
            "query_type",
            "client_tags",
            "selector_resource_estimate",
        }
    ),
    EXACT_MATCH_SOURCE_SELECTORS_TABLE: frozenset(
        {
            "environment",
            "update_time",
            "source",
            "query_type",
            "resource_group_id",
        }
    ),
}
