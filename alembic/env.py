"""Alembic environment for the flag service database.

The database URL comes from ``PostgresSettings`` (``DATABASE_URL`` or the
``DB_*`` fields) unless ``sqlalchemy.url`` is already configured. Callers
running migrations in-process may hand over a ready engine through
``config.attributes["engine"]``.

SQLite connections always use batch mode so ALTER statements work there.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import TYPE_CHECKING, Any

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from flag_service.core.database.base import Base
from flag_service.core.settings import get_db_settings
from flag_service.features.featureflags import models  # noqa: F401

if TYPE_CHECKING:
    from alembic.operations.ops import MigrationScript
    from alembic.runtime.migration import MigrationContext
    from sqlalchemy.engine import Connection

config = context.config
target_metadata = Base.metadata

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if not config.get_main_option("sqlalchemy.url"):
    # ConfigParser interpolation: a literal % must be doubled
    config.set_main_option("sqlalchemy.url", get_db_settings().url.replace("%", "%%"))

SYSTEM_SCHEMAS = frozenset({"pg_catalog", "information_schema"})


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """Leave alembic's bookkeeping table and PostgreSQL system schemas alone."""
    _ = reflected, compare_to
    if type_ == "table" and name == "alembic_version":
        return False
    return getattr(obj, "schema", None) not in SYSTEM_SCHEMAS


def skip_empty_revisions(
    migration_context: MigrationContext,
    revision: Any,
    directives: list[MigrationScript],
) -> None:
    """Do not write an autogenerated revision that has no operations."""
    _ = migration_context, revision
    if not getattr(config.cmd_opts, "autogenerate", False) or not directives:
        return
    upgrade_ops = directives[0].upgrade_ops
    if upgrade_ops is not None and upgrade_ops.is_empty():
        directives.clear()
        print("No schema changes detected, no revision written")


def _configure(**options: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=config.attributes.get("compare_type", True),
        include_object=include_object,
        **options,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on(connection: Connection) -> None:
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite"
        or config.attributes.get("render_as_batch", False),
        process_revision_directives=skip_empty_revisions,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = config.attributes.get("engine")
    owns_engine = engine is None
    if owns_engine:
        engine = async_engine_from_config(
            config.get_section(config.config_ini_section, {}),
            prefix="sqlalchemy.",
            poolclass=pool.NullPool,
        )

    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_on)
    finally:
        if owns_engine:
            await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
