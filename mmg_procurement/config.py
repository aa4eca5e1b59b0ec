import os


def _bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    BASE_DIR = os.path.dirname(os.path.dirname(__file__))
    DATABASE_URL = os.environ.get("DATABASE_URL")
    DATABASE_DIR = None if DATABASE_URL else os.path.join(BASE_DIR, "database")
    DB_PATH = DATABASE_URL or os.path.join(DATABASE_DIR, "mmg_procurement.db")
    DB_AUTO_INIT = _bool_env("DB_AUTO_INIT", False)
    DB_POOL_MIN_CONNECTIONS = _int_env("DB_POOL_MIN_CONNECTIONS", 1)
    DB_POOL_MAX_CONNECTIONS = _int_env("DB_POOL_MAX_CONNECTIONS", 10)
    DB_BUSY_TIMEOUT_SECONDS = _int_env("DB_BUSY_TIMEOUT_SECONDS", 30)

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-mmg-procurement")
    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    def __init__(self):
        env = os.environ.get("FLASK_ENV", "development").lower()
        if env == "production" and not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is not set for the production environment.")
        if env == "production" and self.SECRET_KEY == "dev-secret-mmg-procurement":
            raise RuntimeError("SECRET_KEY is not safe for production.")
