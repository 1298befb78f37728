"""
Datasource family.

Two mutually exclusive modules share the ``datasource`` group:

- ``datasource.embedded`` activates when no URL is configured, no pooled
  vendor is usable and an embedded engine is on the type universe
- ``datasource.pooled`` activates when an explicit ``datasource.type`` is
  configured or a supported pooled vendor is available

Vendors and engines are probed in a fixed order. The first available one
is recorded as a selection on the winning decision.
"""

from typing import List, Optional, Tuple

from src.autoconfigure.conditions import (
    AnyOf, ComponentAbsent, Named, Scope, TypeAvailable, evaluate,
)
from src.autoconfigure.messages import ConditionMessage, Outcome
from src.autoconfigure.modules import ModuleDescriptor
from src.autoconfigure.snapshot import SnapshotView
from src.autoconfigure.builtin.registry import builtin_condition, builtin_registry


DATASOURCE_TYPE = "javax.sql.DataSource"
XA_DATASOURCE_TYPE = "javax.sql.XADataSource"
EMBEDDED_DATABASE_TYPE = "org.springframework.jdbc.datasource.embedded.EmbeddedDatabaseType"

TYPE_PROPERTY = "datasource.type"
URL_PROPERTY = "datasource.url"

POOL_SELECTION = "datasource.pool"
ENGINE_SELECTION = "datasource.embedded_engine"

DATASOURCE_GROUP = "datasource"
DATASOURCE_NAME = "dataSource"

EMBEDDED_MODULE_ID = "datasource.embedded"
POOLED_MODULE_ID = "datasource.pooled"

# (vendor id, marker type), in probe order
POOLED_VENDORS: Tuple[Tuple[str, str], ...] = (
    ("hikari", "com.zaxxer.hikari.HikariDataSource"),
    ("tomcat", "org.apache.tomcat.jdbc.pool.DataSource"),
    ("dbcp2", "org.apache.commons.dbcp2.BasicDataSource"),
    ("oracle-ucp", "oracle.ucp.jdbc.PoolDataSourceImpl"),
)

EMBEDDED_ENGINES: Tuple[Tuple[str, str], ...] = (
    ("h2", "org.h2.Driver"),
    ("derby", "org.apache.derby.jdbc.EmbeddedDriver"),
    ("hsql", "org.hsqldb.jdbcDriver"),
)

POOLED_CONDITION = AnyOf((
    Named("datasource_type_property"),
    Named("pooled_datasource_available"),
))


def first_available(view: SnapshotView, candidates: Tuple[Tuple[str, str], ...]) -> Optional[str]:
    """Id of the first candidate whose marker type is available."""
    for candidate_id, marker in candidates:
        if view.type_available(marker):
            return candidate_id
    return None


@builtin_condition("datasource_type_property", queries={"property_value"}, category="datasource")
def datasource_type_property(view: SnapshotView) -> Outcome:
    """An explicit pooled implementation is configured."""
    message = ConditionMessage.for_condition("PooledDataSource")
    if not view.property_defined(TYPE_PROPERTY):
        return Outcome.no_match(message.did_not_find("property").items(TYPE_PROPERTY, quote=True))
    value = view.property_value(TYPE_PROPERTY)
    if value is None:
        return Outcome.no_match(message.because(f"could not resolve property '{TYPE_PROPERTY}'"))
    if not value.strip():
        return Outcome.no_match(message.because(f"property '{TYPE_PROPERTY}' is empty"))
    return Outcome.match(
        message.found("property").items(TYPE_PROPERTY, quote=True),
        selections={POOL_SELECTION: value.strip()},
    )


@builtin_condition("pooled_datasource_available", queries={"type_available"}, category="datasource")
def pooled_datasource_available(view: SnapshotView) -> Outcome:
    """A supported pooled vendor is on the type universe."""
    message = ConditionMessage.for_condition("PooledDataSource")
    vendor = first_available(view, POOLED_VENDORS)
    if vendor is None:
        return Outcome.no_match(message.did_not_find("supported DataSource").at_all())
    return Outcome.match(
        message.found("supported DataSource").items(vendor),
        selections={POOL_SELECTION: vendor},
    )


@builtin_condition(
    "embedded_database",
    queries={"property_value", "type_available"},
    category="datasource",
)
def embedded_database(view: SnapshotView) -> Outcome:
    message = ConditionMessage.for_condition("EmbeddedDataSource")

    url = view.property_value(URL_PROPERTY)
    if url is not None and url.strip():
        return Outcome.no_match(message.because(f"{URL_PROPERTY} is set"))

    if evaluate(POOLED_CONDITION, view, builtin_registry).matched:
        return Outcome.no_match(message.found_exactly("supported pooled data source"))

    engine = first_available(view, EMBEDDED_ENGINES)
    if engine is None:
        return Outcome.no_match(message.did_not_find("embedded database").at_all())
    return Outcome.match(
        message.found("embedded database").items(engine),
        selections={ENGINE_SELECTION: engine},
    )


def _absent_datasources():
    return (
        ComponentAbsent(DATASOURCE_TYPE, Scope.BY_TYPE),
        ComponentAbsent(XA_DATASOURCE_TYPE, Scope.BY_TYPE),
    )


def modules() -> List[ModuleDescriptor]:
    return [
        ModuleDescriptor(
            id=EMBEDDED_MODULE_ID,
            conditions=(
                TypeAvailable(DATASOURCE_TYPE),
                TypeAvailable(EMBEDDED_DATABASE_TYPE),
                Named("embedded_database"),
            ) + _absent_datasources(),
            group=DATASOURCE_GROUP,
            provided_names={DATASOURCE_NAME},
            provided_type=DATASOURCE_TYPE,
            description="Embedded in-process database",
        ),
        ModuleDescriptor(
            id=POOLED_MODULE_ID,
            conditions=(
                TypeAvailable(DATASOURCE_TYPE),
                TypeAvailable(EMBEDDED_DATABASE_TYPE),
                POOLED_CONDITION,
            ) + _absent_datasources(),
            group=DATASOURCE_GROUP,
            provided_names={DATASOURCE_NAME},
            provided_type=DATASOURCE_TYPE,
            description="Connection-pooled data source",
        ),
    ]
