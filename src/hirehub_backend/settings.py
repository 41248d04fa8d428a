import os
import threading


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ["true", "1", "yes", "on"]


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.reload()

    def reload(self):
        """Re-read the environment. Tests call this after patching variables."""
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE", "development")

        # Security: Force disable debug info in API responses (overrides DEBUG_MODE)
        self.DISABLE_API_DEBUG_INFO = _env_flag("DISABLE_API_DEBUG_INFO")

        # Database
        self.DATABASE_URL = os.environ.get("DATABASE_URL", None)
        self.DB_CREATE_SCHEMA = _env_flag("DB_CREATE_SCHEMA", "true")

        # Authentication (identity provider sits in front of us)
        self.DISABLE_AUTH = _env_flag("DISABLE_AUTH")
        self.GATEWAY_SHARED_SECRET = os.environ.get("GATEWAY_SHARED_SECRET", None)
        self.ADMIN_IDENTITIES = _env_list("ADMIN_IDENTITIES")

        # Room authorization store: "memory" (per process) or "redis" (shared)
        self.ROOM_STORE_BACKEND = os.environ.get("ROOM_STORE_BACKEND", "memory").lower()

        # WebSocket
        self.WS_SEND_TIMEOUT = float(os.environ.get("WS_SEND_TIMEOUT", "5.0"))
        self.WS_MAX_TOTAL_CONNECTIONS = int(os.environ.get("WS_MAX_TOTAL_CONNECTIONS", "10000"))

        # Session listings
        self.ACTIVE_SESSIONS_LIMIT = int(os.environ.get("ACTIVE_SESSIONS_LIMIT", "20"))
        self.RECENT_SESSIONS_LIMIT = int(os.environ.get("RECENT_SESSIONS_LIMIT", "20"))

        # Rate limiting
        self.RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
        self.SESSION_CREATE_RATE_LIMIT = os.environ.get("SESSION_CREATE_RATE_LIMIT", "30/minute")

        self.CORS_ORIGINS = _env_list(
            "CORS_ORIGINS",
            "http://localhost:5173,http://localhost:5174",
        )

    @property
    def include_debug_info(self) -> bool:
        return (
            self.DEBUG_MODE.lower() in ['dev', 'development', 'local']
            and not self.DISABLE_API_DEBUG_INFO
        )

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
