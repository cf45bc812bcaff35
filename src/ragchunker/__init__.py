"""RAG document chunker: splitting, validation and assembly of retrieval chunks."""

__version__ = "0.3.0"
