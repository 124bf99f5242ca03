from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool

from src.core import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def sync_url(url: str) -> str:
    """Migrations run on the blocking driver of the same database"""
    return url.replace("+asyncpg", "").replace("+aiosqlite", "")


config.set_main_option("sqlalchemy.url", sync_url(get_settings().DATABASE_URL).replace("%", "%%"))

# Схема задаётся явными ревизиями, автогенерация не используется
target_metadata = None


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
