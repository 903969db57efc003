from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Import Base and all models that should be tracked by migrations
from storefront.config import Settings
from storefront.database import Base, normalize_url
import storefront.models.users
import storefront.models.refresh_token
import storefront.models.product
import storefront.models.cart
import storefront.models.order
import storefront.models.log


config = context.config


if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The application's DATABASE_URL wins over the ini placeholder
config.set_main_option("sqlalchemy.url", normalize_url(Settings().DATABASE_URL))

# target_metadata contains definitions of all tables declared in models (Base.metadata)
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, generating SQL scripts without DB connection."""
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
    """Run migrations in 'online' mode, connecting directly to the database."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata,
            # SQLite needs batch mode for ALTER TABLE
            render_as_batch=connection.dialect.name == "sqlite",
        )

        # Run migrations within a single transaction
        with context.begin_transaction():
            context.run_migrations()


# Select execution mode based on Alembic configuration
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
