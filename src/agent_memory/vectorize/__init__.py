from .hashing import HashingEmbedder, tokenize
from .sentence import SentenceTransformerEmbedder

__all__ = ["HashingEmbedder", "SentenceTransformerEmbedder", "tokenize"]
