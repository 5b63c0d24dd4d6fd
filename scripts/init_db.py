import argparse
import asyncio
import importlib

from repository_factory.core.config import settings
from repository_factory.core.database import build_async_engine, create_schema_async, drop_schema_async
from repository_factory.core.logging_config import setup_logging


async def init_models(url: str, drop: bool = False):
    engine = build_async_engine(url)
    try:
        if drop:
            await drop_schema_async(engine)
        await create_schema_async(engine)
    finally:
        await engine.dispose()
    print("Database Initialized.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create tables for every model registered on Base.")
    parser.add_argument("--url", default=settings.ASYNC_DATABASE_URL)
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    parser.add_argument("--models", nargs="*", default=[], help="modules to import so their models register")
    args = parser.parse_args()

    for module in args.models:
        importlib.import_module(module)

    setup_logging(json_output=False)
    asyncio.run(init_models(args.url, drop=args.drop))
