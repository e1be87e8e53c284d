"""Range checks on cloud parameters before they reach the simulation."""

from __future__ import annotations

import math
from collections.abc import Mapping
from numbers import Real

from stellarsim.base.cloud import CloudParameters
from stellarsim.constants import VALIDATION_RANGES
from stellarsim.exceptions import FieldError, ValidationError

REQUIRED_FIELDS = ("mass", "metallicity", "angular_momentum")
OPTIONAL_FIELDS = (
    "temperature",
    "radius",
    "turbulence_velocity",
    "magnetic_field_strength",
)


def _check_value(field, value):
    if isinstance(value, bool) or not isinstance(value, Real):
        return FieldError(field, f"must be a number, got {value!r}")
    if not math.isfinite(value):
        return FieldError(field, f"must be finite, got {value!r}")
    low, high = VALIDATION_RANGES[field]
    if not low <= value <= high:
        return FieldError(field, f"must be between {low:g} and {high:g}, got {value:g}")
    return None


def _field_getter(params):
    if isinstance(params, Mapping):
        return params.get

    def get(name, default=None):
        return getattr(params, name, default)

    return get


def validate_cloud_parameters(params) -> list[FieldError]:
    """
    Check cloud parameters against ``VALIDATION_RANGES``

    Args:
        params (CloudParameters, Mapping or object with matching attributes):
            Parameters to check

    Returns:
        list of FieldError:
            One entry per offending field, empty when valid
    """
    get = _field_getter(params)
    errors = []
    for field in REQUIRED_FIELDS:
        value = get(field)
        if value is None:
            errors.append(FieldError(field, "is required"))
            continue
        error = _check_value(field, value)
        if error is not None:
            errors.append(error)
    for field in OPTIONAL_FIELDS:
        value = get(field)
        if value is None:
            continue
        error = _check_value(field, value)
        if error is not None:
            errors.append(error)
    return errors


def ensure_valid_cloud_parameters(params) -> CloudParameters:
    """
    Validated ``CloudParameters`` built from ``params``

    Raises:
        ValidationError:
            If any field is missing or out of range
    """
    errors = validate_cloud_parameters(params)
    if errors:
        raise ValidationError(errors)
    if isinstance(params, CloudParameters):
        return params
    get = _field_getter(params)
    fields = {}
    for field in REQUIRED_FIELDS + OPTIONAL_FIELDS:
        value = get(field)
        fields[field] = float(value) if value is not None else None
    return CloudParameters(**fields)
