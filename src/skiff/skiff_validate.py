"""
Construction-time checks for call argument lists and parameter lists.

The parser calls these as soon as a `Call`, `Lambda` or `FunctionDef` has all of its
arguments or parameters, before the node itself is built. Each check raises a
`ValidationError` pointing at the first offending argument or parameter.

Functions:
    check_call_arguments(arguments): positional → named → ``*args`` → ``**kwargs``.
    check_parameters(parameters): parameter-list shape and duplicate names.
"""

from __future__ import annotations

from collections.abc import Sequence

from skiff.skiff_ast import (
    Args,
    Argument,
    ArgsSpread,
    KwArgs,
    KwArgsSpread,
    Named,
    NoArgs,
    Normal,
    Parameter,
    Positional,
    WithDefault,
)
from skiff.skiff_errors import ValidationError

_POSITIONAL, _NAMED, _ARGS, _KWARGS = range(4)


def check_call_arguments(arguments: Sequence[Argument]) -> None:
    """
    Checks the order of call arguments.

    Accepted order is positional, then named, then a single ``*args`` spread, then a
    single ``**kwargs`` spread. A keyword may not be passed twice.

    Raises:
        ValidationError: Referencing the first argument that breaks the order.
    """
    stage = _POSITIONAL
    seen_names: set[str] = set()
    for arg in arguments:
        if isinstance(arg, Positional):
            if stage > _POSITIONAL:
                raise ValidationError(
                    "Positional argument follows named or unpacked arguments", arg.span
                )
        elif isinstance(arg, Named):
            if stage > _NAMED:
                raise ValidationError(
                    "Named argument follows *args or **kwargs", arg.span
                )
            if arg.name in seen_names:
                raise ValidationError(f"Keyword argument repeated: {arg.name}", arg.span)
            seen_names.add(arg.name)
            stage = _NAMED
        elif isinstance(arg, ArgsSpread):
            if stage == _ARGS:
                raise ValidationError("Multiple *args arguments in call", arg.span)
            if stage > _ARGS:
                raise ValidationError("*args argument follows **kwargs", arg.span)
            stage = _ARGS
        elif isinstance(arg, KwArgsSpread):
            if stage == _KWARGS:
                raise ValidationError("Multiple **kwargs arguments in call", arg.span)
            stage = _KWARGS


def check_parameters(parameters: Sequence[Parameter]) -> None:
    """
    Checks the shape of a `def` or `lambda` parameter list.

    Rules:
        - parameter names are unique;
        - a non-default positional parameter may not follow a defaulted one;
        - at most one of ``*args`` / bare ``*`` appears, and a bare ``*`` is followed by
          at least one named parameter;
        - at most one ``**kwargs`` appears, and nothing follows it.

    Raises:
        ValidationError: Referencing the first offending parameter.
    """
    seen_names: set[str] = set()
    seen_default = False
    star: Parameter | None = None
    kwargs: Parameter | None = None
    bare_star: NoArgs | None = None

    for param in parameters:
        if kwargs is not None:
            if isinstance(param, KwArgs):
                raise ValidationError("Multiple **kwargs parameters", param.span)
            raise ValidationError("Parameter follows **kwargs", param.span)

        if param.name is not None:
            if param.name in seen_names:
                raise ValidationError(
                    f"Duplicate parameter name: {param.name}", param.span
                )
            seen_names.add(param.name)

        if isinstance(param, (Args, NoArgs)):
            if star is not None:
                raise ValidationError(
                    "Only one of *args or bare * may appear", param.span
                )
            star = param
            bare_star = param if isinstance(param, NoArgs) else None
        elif isinstance(param, KwArgs):
            kwargs = param
        elif star is not None:
            # keyword-only section: defaults may appear in any order
            bare_star = None
        elif isinstance(param, WithDefault):
            seen_default = True
        elif isinstance(param, Normal) and seen_default:
            raise ValidationError(
                "Non-default parameter follows default parameter", param.span
            )

    if bare_star is not None:
        raise ValidationError(
            "Bare * must be followed by a named parameter", bare_star.span
        )
