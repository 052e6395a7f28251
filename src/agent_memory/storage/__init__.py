from .in_memory import InMemoryMemoryStore, cosine_distance

__all__ = ["InMemoryMemoryStore", "cosine_distance"]
