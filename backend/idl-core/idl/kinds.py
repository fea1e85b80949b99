from __future__ import annotations

from enum import Enum, IntFlag
from typing import Iterable, List


class Kind(str, Enum):
    INTERFACE = "interface"
    DICTIONARY = "dictionary"
    ENUM = "enum"
    UNION = "union"
    ARRAY = "array"
    SEQUENCE = "sequence"
    ALIAS = "alias"
    CALLBACK_FUNCTION = "callback_function"
    CALLBACK_INTERFACE = "callback_interface"
    PROMISE = "promise"


class Special(str, Enum):
    GETTER = "getter"
    SETTER = "setter"
    NONE = "none"


class Modifier(IntFlag):
    NONE = 0
    STATIC = 1
    CONSTANT = 2
    READ_ONLY = 4
    OPTIONAL = 8
    VARIADIC = 16
    CONSTRUCTOR = 32


_NAMED_MODIFIERS = (
    Modifier.STATIC,
    Modifier.CONSTANT,
    Modifier.READ_ONLY,
    Modifier.OPTIONAL,
    Modifier.VARIADIC,
    Modifier.CONSTRUCTOR,
)


def modifier_names(mods: Modifier) -> List[str]:
    """Modifier.STATIC | Modifier.READ_ONLY -> ["static", "read_only"]"""
    return [m.name.lower() for m in _NAMED_MODIFIERS if mods & m]


def modifiers_from_names(names: Iterable[str]) -> Modifier:
    """
    Inverse of modifier_names. Accepts the IDL spellings too
    ("readonly", "const", "optional", "...").
    """
    aliases = {
        "readonly": "read_only",
        "const": "constant",
        "...": "variadic",
    }
    mods = Modifier.NONE
    for raw in names:
        text = str(raw).strip().lower()
        key = aliases.get(text, text)
        try:
            mods |= Modifier[key.upper()]
        except KeyError:
            raise ValueError(f"Unknown modifier: {raw!r}")
    return mods
