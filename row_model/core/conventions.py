"""Naming conventions.

Derives storage source names, primary and foreign key names and field
names from schema names. Every rule is a plain function that can be
replaced per registry with ``Conventions.set``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

_IRREGULAR = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "mouse": "mice",
}
_UNCOUNTABLE = frozenset({"data", "equipment", "information", "media", "money", "news", "series"})

_PLURAL_RULES = [
    (re.compile(r"(quiz)$", re.I), r"\1zes"),
    (re.compile(r"(matr|vert|ind)(?:ix|ex)$", re.I), r"\1ices"),
    (re.compile(r"(x|ch|ss|sh)$", re.I), r"\1es"),
    (re.compile(r"([^aeiouy]|qu)y$", re.I), r"\1ies"),
    (re.compile(r"(?:([^f])fe|([lr])f)$", re.I), r"\1\2ves"),
    (re.compile(r"sis$", re.I), "ses"),
    (re.compile(r"(bu|statu|alia)s$", re.I), r"\1ses"),
    (re.compile(r"s$", re.I), "s"),
    (re.compile(r"$"), "s"),
]

_SINGULAR_RULES = [
    (re.compile(r"(quiz)zes$", re.I), r"\1"),
    (re.compile(r"(matr)ices$", re.I), r"\1ix"),
    (re.compile(r"(vert|ind)ices$", re.I), r"\1ex"),
    (re.compile(r"(alias|status|bus)(?:es)?$", re.I), r"\1"),
    (re.compile(r"(x|ch|ss|sh)es$", re.I), r"\1"),
    (re.compile(r"([^aeiouy]|qu)ies$", re.I), r"\1y"),
    (re.compile(r"([lr])ves$", re.I), r"\1f"),
    (re.compile(r"([^f])ves$", re.I), r"\1fe"),
    (re.compile(r"(analy|ba|diagno|parenthe|progno|synop|the)ses$", re.I), r"\1sis"),
    (re.compile(r"ss$", re.I), "ss"),
    (re.compile(r"s$", re.I), ""),
]

_UNDERSCORE_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """Convert ``CamelCase`` or ``dashed-name`` to ``snake_case``."""
    return _UNDERSCORE_RE.sub("_", name).replace("-", "_").lower()


def _inflect(name: str, rules: list[tuple[re.Pattern[str], str]], irregular: dict[str, str]) -> str:
    prefix, _, word = name.rpartition("_")
    lower = word.lower()
    if lower in _UNCOUNTABLE:
        return name
    if lower in irregular:
        inflected = irregular[lower]
    else:
        inflected = word
        for pattern, replacement in rules:
            if pattern.search(word):
                inflected = pattern.sub(replacement, word, count=1)
                break
    return f"{prefix}_{inflected}" if prefix else inflected


def plural(name: str) -> str:
    return _inflect(name, _PLURAL_RULES, _IRREGULAR)


def singular(name: str) -> str:
    return _inflect(name, _SINGULAR_RULES, {v: k for k, v in _IRREGULAR.items()})


class Conventions:
    """Table of naming rules, keyed by rule name."""

    def __init__(self, rules: dict[str, Callable[..., Any]] | None = None) -> None:
        self._rules: dict[str, Callable[..., Any]] = {
            "source": lambda name: underscore(name),
            "key": lambda: "id",
            "reference": lambda name: f"{singular(underscore(name))}_id",
            "references": lambda name: f"{singular(underscore(name))}_ids",
            "field": lambda name: singular(underscore(name)),
            "single": lambda name: singular(name),
            "multiple": lambda name: plural(name),
        }
        if rules:
            self._rules.update(rules)

    def set(self, kind: str, rule: Callable[..., Any]) -> Conventions:
        self._rules[kind] = rule
        return self

    def get(self, kind: str) -> Callable[..., Any] | None:
        return self._rules.get(kind)

    def apply(self, kind: str, *args: Any) -> Any:
        """Apply a rule; unknown rules return their first argument unchanged."""
        rule = self._rules.get(kind)
        if rule is None:
            return args[0] if args else None
        return rule(*args)

    def source(self, name: str) -> str:
        return self.apply("source", name)

    def key(self) -> str:
        return self.apply("key")

    def reference(self, name: str) -> str:
        return self.apply("reference", name)

    def references(self, name: str) -> str:
        return self.apply("references", name)

    def field(self, name: str) -> str:
        return self.apply("field", name)

    def singular(self, name: str) -> str:
        return self.apply("single", name)

    def plural(self, name: str) -> str:
        return self.apply("multiple", name)
