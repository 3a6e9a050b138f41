import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load env vars
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(env_path)

# Override DB host for local execution
if os.environ.get("DATABASE_URL"):
    os.environ["DATABASE_URL"] = os.environ["DATABASE_URL"].replace("@db:", "@localhost:")

from tracking.config import Settings
from tracking.db import Database
from tracking.store import Store


async def seed_default_config(database_url: Optional[str] = None) -> bool:
    """Create tables and the default configuration; True when it was created."""
    database = Database(database_url or Settings().DATABASE_URL)
    try:
        await database.create_all()
        config, created = await Store(database).ensure_default_config()
    finally:
        await database.dispose()

    if created:
        print("Default configuration created:")
        for column in config.__table__.columns:
            print(f"  {column.name} = {getattr(config, column.name)}")
    else:
        print("Default configuration already exists")
    return created


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else None
    asyncio.run(seed_default_config(url))
