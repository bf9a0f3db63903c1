import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Hora UTC actual sin tzinfo (así se guarda en la base de datos)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    """Epoch en milisegundos"""
    return int(time.time() * 1000)
