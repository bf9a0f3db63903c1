import logging

from blogosphere.db.models import Base
from blogosphere.db.session import engine

logger = logging.getLogger(__name__)


def init_db(bind=None) -> None:
    """Crear las tablas que falten (alternativa a las migraciones en desarrollo)"""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Tablas de la base de datos verificadas")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
