"""Token parsing for crate specs (``name`` or ``name@constraint``)."""

import re
from typing import Optional, Tuple

import semantic_version

from .models import PackageName, PackageSpec, VersionConstraint

_NAME_EXTRA_CHARS = frozenset("-_")
_ASCII_ALNUM = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")
_WHITESPACE_RE = re.compile(r"\s+")
_WILDCARD_RE = re.compile(r"(^|\.)[*xX](\.|$)")


class SpecParseError(ValueError):
    """Base class for invalid spec tokens."""


class InvalidCharacter(SpecParseError):
    """A crate name contained a character other than alphanumerics, ``-`` or ``_``."""

    def __init__(self, char: str, index: int):
        self.char = char
        self.index = index
        super().__init__(
            f"invalid character {char!r} at index {index}, crate names must be alphanumeric or `-_`"
        )


class EmptyPackageName(SpecParseError):
    """The name part of a spec was empty."""

    def __init__(self):
        super().__init__("crate name must not be empty")


class InvalidVersionRequest(SpecParseError):
    """The constraint part of a spec is not a valid version requirement."""

    def __init__(self, request: str, reason: str = ""):
        self.request = request
        message = f"invalid version request {request!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


def split_spec_token(token: str) -> Tuple[str, Optional[str]]:
    """Return (name, constraint or None) split on the first ``@``."""
    if "@" not in token:
        return token, None
    name, constraint = token.split("@", 1)
    return name, constraint


def parse_package_name(text: str) -> PackageName:
    """Validate a crate name.

    Raises:
        InvalidCharacter: naming the first offending character and its index.
        EmptyPackageName: for an empty string.
    """
    for index, char in enumerate(text):
        if char not in _ASCII_ALNUM and char not in _NAME_EXTRA_CHARS:
            raise InvalidCharacter(char, index)
    if not text:
        raise EmptyPackageName()
    return PackageName(text)


def _to_npm_expression(raw: str) -> str:
    """Translate a Cargo requirement into the npm range grammar.

    Cargo separates comparators with commas, allows whitespace between an
    operator and its version, and reads a bare version as a caret requirement.
    """
    if "|" in raw:
        raise InvalidVersionRequest(raw, "alternatives (`||`) are not supported")
    clauses = []
    for clause in raw.split(","):
        compact = _WHITESPACE_RE.sub("", clause)
        if not compact:
            raise InvalidVersionRequest(raw, "empty comparator")
        if compact[0].isdigit() and not _WILDCARD_RE.search(compact):
            compact = "^" + compact
        clauses.append(compact)
    return " ".join(clauses)


def parse_version_constraint(raw: str) -> VersionConstraint:
    """Compile a Cargo-style version requirement.

    Raises:
        InvalidVersionRequest: carrying the offending text.
    """
    if not raw.strip():
        raise InvalidVersionRequest(raw, "empty version request")
    expression = _to_npm_expression(raw)
    try:
        spec = semantic_version.NpmSpec(expression)
    except ValueError as exc:
        raise InvalidVersionRequest(raw, str(exc)) from exc
    return VersionConstraint(raw, spec)


def parse_spec(token: str) -> PackageSpec:
    """Parse a CLI token into a PackageSpec.

    ``str()`` of the result reproduces ``token``.
    """
    name_part, constraint_part = split_spec_token(token)
    name = parse_package_name(name_part)
    constraint = None
    if constraint_part is not None:
        constraint = parse_version_constraint(constraint_part)
    return PackageSpec(name=name, version_constraint=constraint)


MATCH_ANY = parse_version_constraint("*")
