"""
Closed option sets accepted by the SLR estimators.

Strings are accepted at every public entry point and coerced here once, so
the numerical code only ever branches on enum members.
"""

from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar

__all__ = [
    "ClusterMethod",
    "ResponseType",
    "ScreenMethod",
    "TypeMeasure",
    "resolve_type_measure",
]

E = TypeVar("E", bound=Enum)


class _Option(str, Enum):
    @classmethod
    def coerce(cls: Type[E], value) -> E:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            allowed = ", ".join(repr(m.value) for m in cls)
            raise ValueError(
                f"Invalid {cls.__name__} {value!r}; expected one of {allowed}."
            ) from None


class ScreenMethod(_Option):
    CORRELATION = "correlation"
    WALD = "wald"


class ClusterMethod(_Option):
    SPECTRAL = "spectral"
    HIERARCHICAL = "hierarchical"


class ResponseType(_Option):
    SURVIVAL = "survival"
    CONTINUOUS = "continuous"
    BINARY = "binary"


class TypeMeasure(_Option):
    DEFAULT = "default"
    MSE = "mse"
    ACCURACY = "accuracy"
    AUC = "auc"


def _require_implemented(response_type: ResponseType) -> None:
    if response_type is ResponseType.SURVIVAL:
        raise NotImplementedError("response_type='survival' is not implemented.")


def resolve_type_measure(type_measure, response_type) -> TypeMeasure:
    """
    Check that the error measure fits the response and resolve ``default``.

    Continuous responses are scored by ``mse`` only; binary responses by
    ``accuracy`` (misclassification rate) or ``auc`` (``1 - AUC``).
    """
    measure = TypeMeasure.coerce(type_measure)
    rtype = ResponseType.coerce(response_type)
    _require_implemented(rtype)

    if rtype is ResponseType.CONTINUOUS:
        if measure is TypeMeasure.DEFAULT:
            return TypeMeasure.MSE
        if measure is not TypeMeasure.MSE:
            raise ValueError("if response_type is continuous, then type_measure must be mse.")
        return measure

    if measure is TypeMeasure.DEFAULT:
        return TypeMeasure.ACCURACY
    if measure not in (TypeMeasure.ACCURACY, TypeMeasure.AUC):
        raise ValueError(
            "if response_type is binary, then type_measure must be either accuracy or auc."
        )
    return measure
