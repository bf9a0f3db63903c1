from typing import Optional

from blogosphere.core.schemas import CamelModel

MIN_WORD_COUNT = 100
MAX_WORD_COUNT = 2000
DEFAULT_WORD_COUNT = 500
MIN_SUMMARY_LENGTH = 100


class GenerateContentRequest(CamelModel):
    # Se validan en la ruta para devolver 400 con mensaje propio
    topic: Optional[str] = None
    word_count: Optional[int] = None


class SummarizeRequest(CamelModel):
    content: Optional[str] = None
