from __future__ import annotations

import os

from dotenv import load_dotenv  # type: ignore

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


LOG_LEVEL = (os.getenv("IDL_LOG_LEVEL") or "").strip().upper() or "INFO"

# more than one union parameter per operation: warn + degrade (False) or fail (True)
STRICT_UNIONS = _env_flag("IDL_STRICT_UNIONS", False)

# longest alias chain followed before the chain is treated as corrupt
MAX_ALIAS_DEPTH = int(os.getenv("IDL_MAX_ALIAS_DEPTH") or "64")

ANY_TYPE = "any"
VOID_TYPE = "void"
MAIN_OPERATION = "(main)"

NULLABLE_MARKER = "?"
UNRESTRICTED_PREFIX = "unrestricted "

# synthesized on first lookup, see Model.get_type
PRIMITIVE_TYPES = (
    ANY_TYPE,
    VOID_TYPE,
    "object",
    "boolean",
    "DOMString",
    "string",
)
