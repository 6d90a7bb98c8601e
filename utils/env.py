# ──────────────────────────────────────────────────────────────────────────────
# File: utils/env.py
# Purpose: Safe env readers that ignore malformed values (e.g., "35=") and
#          provide stable defaults. Keep tiny and dependency-free.
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations
import os, re
from typing import List, Optional

_NUM_RE = re.compile(r"^\s*(-?[0-9]+(?:\.[0-9]+)?)\s*$")
_INT_RE = re.compile(r"^\s*(-?[0-9]+)\s*$")


def get_str(*names: str, default: str = "") -> str:
    """First non-empty value among `names`, else default."""
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip():
            return v.strip()
    return default

def get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if not v: return float(default)
    m = _NUM_RE.match(v)
    return float(m.group(1)) if m else float(default)

def get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if not v: return int(default)
    m = _INT_RE.match(v)
    return int(m.group(1)) if m else int(default)

def get_list(name: str, default: List[str]) -> List[str]:
    v = os.getenv(name)
    if not v: return list(default)
    return [s.strip() for s in v.split(",") if s.strip()]

def app_env(default: str = "dev") -> str:
    """Resolve ENV/APP_ENV to a lowercase label."""
    return get_str("ENV", "APP_ENV", default=default).lower()

def is_prod(env: Optional[str] = None) -> bool:
    return (env or app_env()) in {"prod", "production"}
