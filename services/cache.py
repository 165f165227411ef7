import hashlib
import json
import logging
from data.database import VariantAssignment
from config import config

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
ASSIGNMENT_CACHE_TTL = config.assignment_cache_ttl  # assignments never change once written
CLIENT_CACHE_TTL = config.client_cache_ttl  # short, so revoked keys stop working quickly

# --- Valkey/Redis Backend Implementations ---

class _MockValkeyBackend:
    """Simulates the low-level Valkey/Redis client (in-memory)."""
    def __init__(self):
        self._cache = {}

    def get(self, key: str) -> str | None:
        logger.debug("cache mock get: %s", key)
        return self._cache.get(key)

    def set(self, key: str, value: str, ex: int):
        # expiry is not simulated
        logger.debug("cache mock set: %s", key)
        self._cache[key] = value

    def delete(self, *keys: str):
        for key in keys:
            self._cache.pop(key, None)

class RealValkeyBackend:
    """Real implementation using redis-py client (compatible with Valkey)."""
    def __init__(self, host: str, port: int, db: int = 0, password: str | None = None):
        import redis

        try:
            self.client = redis.Redis(
                host=host,
                port=port,
                db=db,
                password=password,
                decode_responses=True,
                socket_timeout=2.0
            )
            self.client.ping()
        except redis.RedisError as e:
            logger.error("Failed to connect to Valkey/Redis: %s", e)
            raise

    def get(self, key: str) -> str | None:
        try:
            logger.debug("cache valkey get: %s", key)
            return self.client.get(key)
        except Exception as e:
            logger.error("Valkey GET error for key %s: %s", key, e)
            return None

    def set(self, key: str, value: str, ex: int):
        try:
            logger.debug("cache valkey set: %s", key)
            self.client.set(key, value, ex=ex)
        except Exception as e:
            logger.error("Valkey SET error for key %s: %s", key, e)

    def delete(self, *keys: str):
        try:
            self.client.delete(*keys)
        except Exception as e:
            logger.error("Valkey DEL error for keys %s: %s", keys, e)


# --- Dedicated Cache Client Class ---

class CacheClient:
    """High-level client for managing application cache operations."""

    def __init__(self, backend):
        self.backend = backend
        logger.debug("CacheClient backend: %s", self.backend)

    # --- Assignment Caching ---
    # Only the assignment row is cached. Variant content is always read from the
    # experiment so edits to a variant's screens reach already-assigned users.

    def get_assignment(self, experiment_id: str, user_id: str) -> VariantAssignment | None:
        key = f"asn:{experiment_id}:{user_id}"
        json_str = self.backend.get(key)
        if json_str:
            return VariantAssignment.from_json(json_str=json_str)

        return None

    def set_assignment(self, assignment: VariantAssignment):
        key = f"asn:{assignment.experiment_id}:{assignment.user_id}"
        json_str = assignment.to_json()
        if json_str:
            self.backend.set(key, json_str, ex=ASSIGNMENT_CACHE_TTL)
            logger.debug("Assignment for user %s (EID %s) cached.",
                         assignment.user_id, assignment.experiment_id)

    def delete_assignments(self, experiment_id: str, user_ids: list[str]):
        if user_ids:
            self.backend.delete(*[f"asn:{experiment_id}:{user_id}" for user_id in user_ids])

    # --- API key Caching ---

    @staticmethod
    def _client_key(api_key: str) -> str:
        # never store raw keys in the cache
        return "key:" + hashlib.sha256(api_key.encode()).hexdigest()

    def get_client(self, api_key: str) -> dict | None:
        json_str = self.backend.get(self._client_key(api_key))
        if json_str:
            return json.loads(json_str)
        return None

    def set_client(self, api_key: str, client: dict):
        self.backend.set(self._client_key(api_key), json.dumps(client), ex=CLIENT_CACHE_TTL)

# --- Initialize Backend and Default Client ---
valkey_host = config.valkey_host
valkey_port = config.valkey_port

logger.info("valkey_host: %s, port: %d", valkey_host, valkey_port)

if valkey_host:
    try:
        VALKEY_BACKEND = RealValkeyBackend(host=valkey_host, port=valkey_port)
    except Exception:
        logger.info("Falling back to Mock Valkey Backend due to connection failure.")
        VALKEY_BACKEND = _MockValkeyBackend()
else:
    logger.info("VALKEY_HOST not set. Using Mock Valkey Backend.")
    VALKEY_BACKEND = _MockValkeyBackend()

# Initialize a default client (singleton)
_DEFAULT_CACHE_CLIENT = CacheClient(backend=VALKEY_BACKEND)

def get_cache_client():
    return _DEFAULT_CACHE_CLIENT

def get_mock_cache_client():
    return CacheClient(backend=_MockValkeyBackend())
