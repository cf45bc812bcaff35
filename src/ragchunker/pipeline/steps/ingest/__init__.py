from .documents import InputError, load_documents, parse_documents

__all__ = ["InputError", "load_documents", "parse_documents"]
