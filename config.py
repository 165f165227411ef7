import os
import log
from dotenv import load_dotenv

# Load .env file into environment
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Process-wide settings read from the environment (and .env) once at import."""

    def __init__(self):
        # storage
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./flow_experiments.db")
        self.valkey_host = os.getenv("VALKEY_HOST", "localhost")
        self.valkey_port = int(os.getenv("VALKEY_PORT", 6379))
        self.assignment_cache_ttl = int(os.getenv("ASSIGNMENT_CACHE_TTL", 3600))
        self.client_cache_ttl = int(os.getenv("CLIENT_CACHE_TTL", 60))

        # event ingestion worker
        self.celery_broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1")
        self.celery_backend_url = os.getenv("CELERY_BACKEND_URL", "redis://localhost:6379/1")
        self.celery_task_always_eager = _env_bool("CELERY_TASK_ALWAYS_EAGER")

        # SDK keys: "nb_test_..." and "nb_live_..."; other keys are legacy organization keys
        self.test_key_prefix = os.getenv("TEST_KEY_PREFIX", "nb_test_")
        self.live_key_prefix = os.getenv("LIVE_KEY_PREFIX", "nb_live_")

        self.max_assignment_retries = int(os.getenv("MAX_ASSIGNMENT_RETRIES", 3))
        self.cors_allow_origins = _env_list("CORS_ALLOW_ORIGINS", "*")

        self.log_level = os.getenv("LOG_LEVEL", default="INFO")
        # empty LOG_FILENAME logs to stdout only
        self.log_filename = os.getenv("LOG_FILENAME", default="flow_experiments.log")

        log.setup_logging(self.log_level, self.log_filename)

    def __repr__(self):
        return (f"<Config db={self.database_url} valkey={self.valkey_host}:{self.valkey_port} "
                f"loglevel={self.log_level} broker={self.celery_broker_url} eager={self.celery_task_always_eager}>")

config = Config()
