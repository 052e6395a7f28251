from .json_canonical import canonical_bytes, canonical_dumps, to_jsonable
from .schema_validator import SchemaRegistry, default_registry, validate_payload

__all__ = [
    "canonical_bytes",
    "canonical_dumps",
    "to_jsonable",
    "SchemaRegistry",
    "default_registry",
    "validate_payload",
]
