import os
from datetime import timedelta

import structlog
from dotenv import load_dotenv

from application.auth import TokenManager
from application.cache import DEFAULT_TTL_SECONDS, ResponseCache
from application.history import HistoryProjector
from application.ledger import CoinLedger
from domain.repositories import Store
from infrastructure.db.seed import seed_database
from infrastructure.db.sqlite_store import SqliteStore
from infrastructure.log_config import configure_logging
from infrastructure.security import Sha256PasswordHasher
from interfaces.discord.handlers import create_discord_bot


load_dotenv()

DISCORD_TOKEN = os.environ.get("DISCORD_TOKEN")
DB_BACKEND = os.environ.get("DB_BACKEND", "sqlite")
DB_PATH = os.environ.get("DB_PATH", "bitslow.db")
CACHE_TTL_SECONDS = float(os.environ.get("CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS))
TOKEN_TTL_HOURS = float(os.environ.get("TOKEN_TTL_HOURS", "6"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
SEED_DEMO_DATA = os.environ.get("SEED_DEMO_DATA", "").lower() in ("1", "true", "yes")

logger = structlog.get_logger()


def build_store() -> Store:
    if DB_BACKEND == "postgres":
        # Imported here so SQLite-only setups don't need a Postgres driver.
        from infrastructure.db.postgres_store import PostgresStore

        return PostgresStore(
            {
                "host": os.environ.get("POSTGRES_HOST", "localhost"),
                "port": int(os.environ.get("POSTGRES_PORT", "5432")),
                "dbname": os.environ.get("POSTGRES_DB", "bitslow"),
                "user": os.environ.get("POSTGRES_USER", "bitslow"),
                "password": os.environ.get("POSTGRES_PASSWORD", ""),
            }
        )
    if DB_BACKEND != "sqlite":
        raise RuntimeError(f"Unsupported DB_BACKEND {DB_BACKEND!r}; use 'sqlite' or 'postgres'.")
    return SqliteStore(DB_PATH)


def main() -> None:
    configure_logging(LOG_LEVEL)

    if not DISCORD_TOKEN:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    store = build_store()
    hasher = Sha256PasswordHasher()
    cache = ResponseCache(ttl_seconds=CACHE_TTL_SECONDS)
    ledger = CoinLedger(store, cache)
    projector = HistoryProjector(store)
    tokens = TokenManager(store, ttl=timedelta(hours=TOKEN_TTL_HOURS))

    if SEED_DEMO_DATA:
        seed_database(store, hasher)

    logger.info("starting_discord_bot", db_backend=DB_BACKEND)
    bot = create_discord_bot(store, ledger, projector, cache, tokens, hasher)
    bot.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
