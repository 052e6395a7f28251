import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from jsonschema import Draft202012Validator

DEFAULT_SCHEMAS_DIR = Path(__file__).resolve().parents[1] / "config" / "schemas"


class SchemaRegistry:
    def __init__(self, schemas_dir: Optional[Path] = None):
        schemas_dir = Path(schemas_dir) if schemas_dir is not None else DEFAULT_SCHEMAS_DIR
        reg = json.loads((schemas_dir / "registry.json").read_text(encoding="utf-8"))
        self._map = {s["schema_id"]: (schemas_dir / s["path"]) for s in reg["schemas"]}
        self._validators: Dict[str, Draft202012Validator] = {}

    @property
    def schema_ids(self) -> list:
        return sorted(self._map)

    def load_schema(self, schema_id: str) -> Dict[str, Any]:
        if schema_id not in self._map:
            raise KeyError(f"unknown schema_id: {schema_id}")
        return json.loads(self._map[schema_id].read_text(encoding="utf-8"))

    def validator(self, schema_id: str) -> Draft202012Validator:
        v = self._validators.get(schema_id)
        if v is None:
            v = Draft202012Validator(self.load_schema(schema_id))
            self._validators[schema_id] = v
        return v


@lru_cache(maxsize=1)
def default_registry() -> SchemaRegistry:
    return SchemaRegistry()


def validate_payload(payload: Dict[str, Any], schema_id: str, registry: Optional[SchemaRegistry] = None) -> None:
    if payload.get("schema_id") != schema_id:
        raise ValueError("schema_id mismatch")
    reg = registry if registry is not None else default_registry()
    reg.validator(schema_id).validate(payload)
