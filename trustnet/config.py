import json
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_weights():
    raw = os.getenv("TRUSTNET_SCORE_WEIGHTS")
    if not raw:
        return None
    return {key: float(value) for key, value in json.loads(raw).items()}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "a_default_secret_key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Trailing window the collector aggregates ERP facts over
    TRUSTNET_METRIC_WINDOW_DAYS = int(os.getenv("TRUSTNET_METRIC_WINDOW_DAYS", 30))
    # Neutral value used for a metric type with no evidence yet
    TRUSTNET_DEFAULT_METRIC_VALUE = int(os.getenv("TRUSTNET_DEFAULT_METRIC_VALUE", 50))
    # None means ScoreEngine.DEFAULT_WEIGHTS
    TRUSTNET_SCORE_WEIGHTS = _env_weights()

    TRUSTNET_CONSENT_VERSION = os.getenv("TRUSTNET_CONSENT_VERSION", "1.0")

    TRUSTNET_AUDIT_HASH_CHAIN = _env_bool("TRUSTNET_AUDIT_HASH_CHAIN", "true")
    TRUSTNET_AUDIT_HASH_ALGORITHM = os.getenv("TRUSTNET_AUDIT_HASH_ALGORITHM", "sha256")

    TRUSTNET_CONFLICT_RETRIES = int(os.getenv("TRUSTNET_CONFLICT_RETRIES", 3))

    TRUSTNET_DB_AUTOCREATE = _env_bool("TRUSTNET_DB_AUTOCREATE", "false")
    TRUSTNET_DB_MIGRATE_ON_START = _env_bool("TRUSTNET_DB_MIGRATE_ON_START", "false")
