"""glyph-search — semantic glyph lookup over an int8-quantized corpus.

Free text is embedded, scored against every pre-quantized corpus row with a
raw dot product, and the best matches are returned in a deterministic order.

Public API::

    from glyph_search import GlyphSearch, SearchConfig, GlyphDB, encode, decode
"""

from .codec import decode, encode
from .config import SearchConfig
from .embeddings import EmbeddingProvider, SentenceTransformerProvider
from .errors import (
    CorruptData,
    DataUnavailable,
    GlyphSearchError,
    InvalidInput,
    ModelUnavailable,
)
from .loader import ArtifactLoader, ArtifactSource, SingleFlight
from .quantization import QuantizedEmbeddings, quantize_batches, quantize_symmetric
from .ranking import top_k, top_k_partial
from .search import GlyphSearch
from .similarity import cosine_similarity, dot_product_quantized, score_all
from .status import StatusChannel, Subscription
from .types import CorpusEntry, GlyphDB, ProviderStatus, SearchResult

__version__ = "0.1.0"
__all__ = [
    "GlyphSearch",
    "SearchConfig",
    "GlyphDB",
    "CorpusEntry",
    "SearchResult",
    "ProviderStatus",
    "encode",
    "decode",
    "quantize_symmetric",
    "quantize_batches",
    "QuantizedEmbeddings",
    "dot_product_quantized",
    "score_all",
    "cosine_similarity",
    "top_k",
    "top_k_partial",
    "SingleFlight",
    "ArtifactSource",
    "ArtifactLoader",
    "EmbeddingProvider",
    "SentenceTransformerProvider",
    "StatusChannel",
    "Subscription",
    "GlyphSearchError",
    "ModelUnavailable",
    "DataUnavailable",
    "CorruptData",
    "InvalidInput",
]
