from dotenv import load_dotenv
import os

load_dotenv()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

OSU_API_URL = os.getenv("OSU_API_URL", "https://old.ppy.sh").rstrip("/")
OSU_API_KEY = os.getenv("OSU_API_KEY", "")

# account used for the direct search endpoint
OSU_USERNAME = os.getenv("OSU_USERNAME", "")
OSU_PASSWORD = os.getenv("OSU_PASSWORD", "")

PG_USER = os.getenv("PG_USER")
PG_PASSWORD = os.getenv("PG_PASSWORD")
PG_HOST = os.getenv("PG_HOST")
PG_PORT = os.getenv("PG_PORT")
PG_DB = os.getenv("PG_DB")
PG_DSN = f"postgresql+asyncpg://{PG_USER}:{PG_PASSWORD}@{PG_HOST}:{PG_PORT}/{PG_DB}"

# takes precedence over the PG_* variables, e.g. sqlite+aiosqlite:///mirror.db
DATABASE_URL = os.getenv("DATABASE_URL") or PG_DSN

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 10))
HTTP_RETRIES = int(os.getenv("HTTP_RETRIES", 3))
HTTP_BACKOFF = float(os.getenv("HTTP_BACKOFF", 1))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
WORKER_SLEEP_INTERVAL = float(os.getenv("WORKER_SLEEP_INTERVAL", 1))
UPDATE_BATCH_SIZE = int(os.getenv("UPDATE_BATCH_SIZE", 50))
