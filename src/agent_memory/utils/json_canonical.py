from __future__ import annotations

import json
from dataclasses import is_dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any


def to_jsonable(x: Any) -> Any:
    """
    Convert objects into JSON-serialisable structures deterministically.
    - objects exposing to_payload() -> that payload
    - dataclasses -> asdict (recursive)
    - datetime -> ISO-8601, Path -> str
    - dict/list/tuple/set -> recursive (set -> sorted list)
    """
    if x is None or isinstance(x, (bool, int, float, str)):
        return x

    to_payload = getattr(x, "to_payload", None)
    if callable(to_payload):
        return to_jsonable(to_payload())

    if isinstance(x, datetime):
        return x.isoformat()

    if isinstance(x, Path):
        return str(x)

    if is_dataclass(x) and not isinstance(x, type):
        return to_jsonable(asdict(x))

    if isinstance(x, dict):
        return {str(k): to_jsonable(v) for k, v in x.items()}

    if isinstance(x, (list, tuple)):
        return [to_jsonable(v) for v in x]

    if isinstance(x, set):
        return sorted([to_jsonable(v) for v in x], key=lambda z: json.dumps(z, sort_keys=True, separators=(",", ":"), ensure_ascii=False))

    # numpy scalars and arrays
    tolist = getattr(x, "tolist", None)
    if callable(tolist):
        return to_jsonable(tolist())

    return str(x)


def canonical_dumps(obj: Any) -> str:
    """
    Deterministic JSON: sort_keys, compact separators, ensure_ascii=False.
    """
    j = to_jsonable(obj)
    return json.dumps(j, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def canonical_bytes(obj: Any) -> bytes:
    return canonical_dumps(obj).encode("utf-8")
