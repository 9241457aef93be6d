from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from restaurant_loyalty.db import DATABASE_URL, Base
from restaurant_loyalty.models.restaurant import Restaurant  # noqa: F401
from restaurant_loyalty.models.loyalty_code import LoyaltyCode  # noqa: F401
from restaurant_loyalty.models.loyalty_code_usage import LoyaltyCodeUsage  # noqa: F401
from restaurant_loyalty.models.loyalty_point import LoyaltyPoint  # noqa: F401
from restaurant_loyalty.models.reward import Reward  # noqa: F401
from restaurant_loyalty.models.reward_redemption import RewardRedemption  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
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
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
