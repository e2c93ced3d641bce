"""Name mangler registry used to derive wrapper method names."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Protocol

_UNDERSCORE_LETTER = re.compile(r"_+([a-z0-9])")


class NameMangler(Protocol):
    name: str

    def method_name(self, routine_name: str) -> str:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class CamelCaseMangler(NameMangler):
    name: str = "camel"

    def method_name(self, routine_name: str) -> str:
        return _UNDERSCORE_LETTER.sub(lambda m: m.group(1).upper(), routine_name)


@dataclass(frozen=True, slots=True)
class PascalCaseMangler(NameMangler):
    name: str = "pascal"

    def method_name(self, routine_name: str) -> str:
        camel = _UNDERSCORE_LETTER.sub(lambda m: m.group(1).upper(), routine_name)
        return camel[:1].upper() + camel[1:]


@dataclass(frozen=True, slots=True)
class SnakeCaseMangler(NameMangler):
    name: str = "snake"

    def method_name(self, routine_name: str) -> str:
        return routine_name.lower()


_MANGLERS: Dict[str, NameMangler] = {
    "camel": CamelCaseMangler(),
    "pascal": PascalCaseMangler(),
    "snake": SnakeCaseMangler(),
}

DEFAULT_MANGLER = "camel"


def get_mangler(name: str) -> NameMangler:
    try:
        return _MANGLERS[name]
    except KeyError as exc:
        raise ValueError(f"Unsupported name mangler: {name}") from exc


def available_manglers() -> list[str]:
    return sorted(_MANGLERS.keys())
