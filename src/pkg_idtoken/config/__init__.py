from .env import settings_from_env
from .settings import IdTokenSettings

__all__ = ["IdTokenSettings", "settings_from_env"]
