"""
Dialect policy for the SKIFF parser.

A dialect decides which optional language features an embedding accepts. The
parser holds one dialect for the duration of a parse and asks it, at the exact
grammar point where an optional construct has been recognized, whether that
construct is allowed.

Classes:
    - Visibility: Whether names bound by a `load` statement are re-exported.
    - Feature: The optional constructs a dialect can gate.
    - DialectPolicy (Protocol): The capability surface the parser consumes.
    - Dialect: Frozen set of feature flags implementing `DialectPolicy`.
    - DialectConfigError: Raised when a dialect configuration is invalid.

Features:
    - Named presets (`standard`, `extended`)
    - Loading from plain dicts or JSON files, rejecting unknown keys and non-boolean values

Usage:
    >>> dialect = Dialect.named("extended")
    >>> dialect.permits_types()
    True
    >>> Dialect.from_dict({"enable_lambda": False}).permits_lambda()
    False
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class Feature(Enum):
    """Optional constructs, with the phrase used in error messages."""

    DEF = "def"
    LAMBDA = "lambda"
    LOAD = "load"
    KEYWORD_ONLY_ARGUMENTS = "keyword_only_arguments"
    TYPES = "types"

    @property
    def description(self) -> str:
        return {
            Feature.DEF: "Function definitions",
            Feature.LAMBDA: "Lambda expressions",
            Feature.LOAD: "Load statements",
            Feature.KEYWORD_ONLY_ARGUMENTS: "Keyword-only argument markers",
            Feature.TYPES: "Type annotations",
        }[self]


class DialectPolicy(Protocol):  # pragma: no cover
    """Capability queries the parser makes while recognizing optional syntax."""

    def permits_def(self) -> bool: ...

    def permits_lambda(self) -> bool: ...

    def permits_load(self) -> bool: ...

    def load_visibility(self) -> Visibility: ...

    def permits_keyword_only_arguments(self) -> bool: ...

    def permits_types(self) -> bool: ...


class DialectConfigError(Exception):
    """Raised when a dialect configuration cannot be applied.

    Attributes:
        problems (list[str]): One entry per offending key.
    """

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or []


@dataclass(frozen=True)
class Dialect:
    """
    Feature flags for one embedding of the language.

    Attributes:
        enable_def (bool): Accept `def` statements.
        enable_lambda (bool): Accept `lambda` expressions.
        enable_load (bool): Accept `load(...)` statements.
        enable_keyword_only_arguments (bool): Accept a bare `*` in `def` parameters.
        enable_types (bool): Accept `: type` and `-> type` annotations.
        enable_load_reexport (bool): Make loaded bindings public instead of private.
    """

    enable_def: bool = True
    enable_lambda: bool = True
    enable_load: bool = True
    enable_keyword_only_arguments: bool = False
    enable_types: bool = False
    enable_load_reexport: bool = False

    def permits_def(self) -> bool:
        return self.enable_def

    def permits_lambda(self) -> bool:
        return self.enable_lambda

    def permits_load(self) -> bool:
        return self.enable_load

    def load_visibility(self) -> Visibility:
        return Visibility.PUBLIC if self.enable_load_reexport else Visibility.PRIVATE

    def permits_keyword_only_arguments(self) -> bool:
        return self.enable_keyword_only_arguments

    def permits_types(self) -> bool:
        return self.enable_types

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    @classmethod
    def named(cls, name: str) -> Dialect:
        """Returns the preset called ``name`` (case-insensitive).

        Raises:
            DialectConfigError: If no such preset exists.
        """
        try:
            return PRESETS[name.lower()]
        except KeyError:
            raise DialectConfigError(
                f"Unknown dialect preset: {name}", sorted(PRESETS)
            ) from None

    @classmethod
    def from_dict(cls, cfg: dict[str, Any], base: Dialect | None = None) -> Dialect:
        """
        Builds a dialect from a flag mapping, starting from ``base`` (default: standard).

        A ``"preset"`` key selects the base by name; every other key must name a flag.

        Raises:
            DialectConfigError: On unknown keys or non-boolean values.
        """
        if not isinstance(cfg, dict):
            raise DialectConfigError("Dialect configuration must be a dict")

        cfg = dict(cfg)
        if "preset" in cfg:
            base = cls.named(str(cfg.pop("preset")))
        base = base or STANDARD

        known = {f.name for f in fields(cls)}
        problems: list[str] = []
        for key, value in cfg.items():
            if key not in known:
                problems.append(f"'{key}' is not a dialect flag")
            elif not isinstance(value, bool):
                problems.append(f"'{key}' must be true or false, got {value!r}")

        if problems:
            raise DialectConfigError("Invalid dialect configuration", problems)

        return replace(base, **cfg)

    @classmethod
    def load_from_json(cls, path: str) -> Dialect:
        """
        Loads a dialect from a JSON object of flags, e.g.::

            {"preset": "standard", "enable_types": true}

        Raises:
            DialectConfigError: If the file cannot be read or the configuration is invalid.
        """
        try:
            with open(path, encoding="utf-8") as f:
                raw_cfg = json.load(f)
        except (OSError, ValueError) as e:
            raise DialectConfigError(f"Failed to load dialect file: {e}") from e

        dialect = cls.from_dict(raw_cfg)
        logger.debug("Loaded dialect from %s: %s", path, dialect.to_dict())
        return dialect


STANDARD = Dialect()

EXTENDED = Dialect(
    enable_def=True,
    enable_lambda=True,
    enable_load=True,
    enable_keyword_only_arguments=True,
    enable_types=True,
    enable_load_reexport=True,
)

PRESETS: dict[str, Dialect] = {"standard": STANDARD, "extended": EXTENDED}
