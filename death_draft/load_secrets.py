import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER", "postgres")
password = os.getenv("DB_PASSWORD", "postgres")
host = os.getenv("DB_HOST", "localhost")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME", "death_draft")
db_backend = os.getenv("DB_BACKEND", "postgres")
sqlite_path = os.getenv("SQLITE_PATH", "death_draft.sqlite3")

redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))

# Comma separated player names in draft order; seats are numbered from 1.
draft_roster = os.getenv("DRAFT_ROSTER", "Scoot,Brian,Stephan,Bee,Ryan,Thomas")
resync_interval_seconds = int(os.getenv("RESYNC_INTERVAL_SECONDS", "60"))

if __name__ == "__main__":
    print(user, host, port, db_name, db_backend, redis_host, redis_port, draft_roster)
