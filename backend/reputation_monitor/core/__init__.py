from reputation_monitor.core.config import settings
from reputation_monitor.core.database import get_db, Base, get_engine

__all__ = ["settings", "get_db", "Base", "get_engine"]
