"""
Minimal SQL builder that keeps trusted text and untrusted values apart.

Two kinds of input exist:

  - ``TrustedSql`` -- text that may be placed verbatim into a statement.  Only
    the registry (table sources, column expressions, identifiers validated at
    load time) and the fixed keyword tables in this package produce it.
  - everything else -- values, which can only enter a statement through
    ``bind()`` and therefore always end up as a bound parameter.

A ``Fragment`` is a template in the tagged-template style: ``strings`` holds
the trusted text around the placeholders and ``values`` the bound values,
with ``len(strings) == len(values) + 1``.  Fragments are immutable and compose
with ``+`` and ``join()``; ``render()`` numbers the placeholders.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, NewType

TrustedSql = NewType("TrustedSql", str)

PLACEHOLDER_PREFIX = "p"


@dataclass(frozen=True)
class Fragment:
    strings: tuple[str, ...]
    values: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if len(self.strings) != len(self.values) + 1:
            raise ValueError("Fragment needs exactly one more string than values")

    def __add__(self, other: Fragment) -> Fragment:
        if not isinstance(other, Fragment):
            return NotImplemented
        return concat(self, other)

    @property
    def is_empty(self) -> bool:
        return not self.values and not self.strings[0]


EMPTY = Fragment(("",))


@dataclass(frozen=True)
class CompiledStatement:
    """Parameterized SQL text plus its ordered bound values."""

    text: str
    parameters: tuple[Any, ...]

    def bind_params(self) -> dict[str, Any]:
        """Named parameters in the form ``sqlalchemy.text()`` expects."""
        return {
            f"{PLACEHOLDER_PREFIX}{i}": value
            for i, value in enumerate(self.parameters, start=1)
        }


def raw(text: TrustedSql) -> Fragment:
    return Fragment((text,))


def bind(value: Any) -> Fragment:
    return Fragment(("", ""), (value,))


def concat(*parts: Fragment) -> Fragment:
    strings: list[str] = [""]
    values: list[Any] = []
    for part in parts:
        strings[-1] += part.strings[0]
        strings.extend(part.strings[1:])
        values.extend(part.values)
    return Fragment(tuple(strings), tuple(values))


def join(parts: Iterable[Fragment], separator: TrustedSql) -> Fragment:
    sep = raw(separator)
    joined: list[Fragment] = []
    for i, part in enumerate(parts):
        if i:
            joined.append(sep)
        joined.append(part)
    return concat(*joined)


def quoted(identifier: TrustedSql) -> Fragment:
    """Double-quote an identifier that the registry has already validated."""
    return raw(TrustedSql(f'"{identifier}"'))


def render(fragment: Fragment) -> CompiledStatement:
    pieces = [fragment.strings[0]]
    for i, text in enumerate(fragment.strings[1:], start=1):
        pieces.append(f":{PLACEHOLDER_PREFIX}{i}")
        pieces.append(text)
    return CompiledStatement(text="".join(pieces), parameters=fragment.values)
