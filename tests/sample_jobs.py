"""
Job definitions referenced by name from jobs files in the CLI tests.
"""

from dbfakes import COUNT_SQL, WRITE_SQL
from jobs.outcomes import Proceed, SkipWithReason
from migration import MigrationDefinition
from reconciliation import ReconciliationDefinition


def bind_customer(record, ctx):
    return Proceed((record["id"], record["name"]))


def compare_names(source, target, ctx):
    if source["name"] != target["name"]:
        return SkipWithReason("name differs")
    return None


customers_migration = MigrationDefinition(
    name="customers",
    source_query="customers_select.sql",
    write_sql=WRITE_SQL,
    bind=bind_customer,
    identify=lambda record: f"id={record['id']}",
    count_sql=COUNT_SQL,
)

orders_migration = MigrationDefinition(
    name="orders",
    source_query="orders_select.sql",
    write_sql="INSERT INTO orders (id) VALUES (%s)",
    bind=lambda record, ctx: Proceed((record[0],)),
    transaction_mode="All",
)

customers_check = ReconciliationDefinition(
    name="customers-check",
    source_query="customers_select.sql",
    destination_query="customers_lookup.sql",
    prepare=lambda record, ctx: Proceed((record["id"],)),
    check=compare_names,
)
