import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
generate_schemas = os.environ.get("GENERATE_SCHEMAS", "true").lower() in ("1", "true", "yes")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
SLOTS_TTL = int(os.environ.get("SLOTS_TTL", "60"))
