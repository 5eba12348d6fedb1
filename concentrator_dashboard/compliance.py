"""
Compliance classification — pure functions with no side effects.

Classifies a measured value against a [min, max] standard band with a
warning zone of 10% of the band width on either side. The intake flow
rate is classified by fixed absolute buckets instead.
"""

import logging
from typing import Any

from .config import (
    COMPLIANCE_STANDARDS,
    DEFAULT_STANDARDS,
    INTAKE_FLOW_ABOVE,
    INTAKE_FLOW_BANDS,
    INTAKE_FLOW_PARAMETER,
    WARNING_BAND_FRACTION,
)
from .loaders.utils import safe_float

logger = logging.getLogger(__name__)

COMPLIANT = "compliant"
WARNING = "warning"
NON_COMPLIANT = "non_compliant"


def _deviation_pct(diff: float, bound: float, band_width: float) -> float:
    """Deviation of `diff` relative to `bound`, in percent.

    A zero bound has no meaningful relative deviation; the band width is
    used as the reference instead, or the absolute difference when the
    band has no width either.
    """
    if bound != 0:
        return abs(diff / bound) * 100
    if band_width != 0:
        return abs(diff / band_width) * 100
    return abs(diff)


def classify(value: Any, standard: dict) -> dict | None:
    """Return a compliance result for `value` against `standard`.

    Logic
    -----
    - min <= value <= max:                      compliant, deviation 0
    - value < min and value >= min - tolerance: warning
    - value > max and value <= max + tolerance: warning
    - otherwise:                                non_compliant

    where tolerance = (max - min) * 0.1. Deviation is measured from the
    violated bound, as a percentage of that bound.

    Returns None when the value is absent or not numeric.
    """
    val = safe_float(value)
    if val is None:
        return None

    lo = float(standard["min"])
    hi = float(standard["max"])
    unit = standard.get("unit", "")
    label = standard.get("label", "")
    tolerance = (hi - lo) * WARNING_BAND_FRACTION

    if lo <= val <= hi:
        return {
            "status": COMPLIANT,
            "deviation_pct": 0.0,
            "message": f"{label} {val:.2f}{unit} within {lo:g}-{hi:g}{unit}".strip(),
        }

    if val < lo:
        deviation = _deviation_pct(lo - val, lo, hi - lo)
        status = WARNING if val >= lo - tolerance else NON_COMPLIANT
        message = f"{label} {val:.2f}{unit} below minimum {lo:g}{unit} by {deviation:.2f}%"
    else:
        deviation = _deviation_pct(val - hi, hi, hi - lo)
        status = WARNING if val <= hi + tolerance else NON_COMPLIANT
        message = f"{label} {val:.2f}{unit} above maximum {hi:g}{unit} by {deviation:.2f}%"

    return {
        "status": status,
        "deviation_pct": deviation,
        "message": message.strip(),
    }


def classify_intake_flow(value: Any) -> dict | None:
    """Classify the intake flow rate into one of five fixed buckets.

    <20 极低, 20-30 低, 30-40 中, 40-50 高, >50 极高.
    """
    val = safe_float(value)
    if val is None:
        return None

    for bound, status, label, inclusive in INTAKE_FLOW_BANDS:
        if val < bound or (inclusive and val == bound):
            break
    else:
        status, label = INTAKE_FLOW_ABOVE

    return {
        "status": status,
        "label": label,
        "message": f"进厂流量 {val:.1f} ({label})",
    }


def get_standard(parameter: str, site: str | None = None) -> dict | None:
    """Look up the standard for (site, parameter), falling back to the plant default."""
    if site is not None:
        standard = COMPLIANCE_STANDARDS.get((site, parameter))
        if standard is not None:
            return standard
    return DEFAULT_STANDARDS.get(parameter)


def classify_parameter(parameter: str, value: Any, site: str | None = None) -> dict | None:
    """Classify a value by parameter identity.

    The intake flow rate uses its own bucket classification; every other
    parameter is checked against its configured standard. Returns None when
    the value is absent or no standard is configured.
    """
    if parameter == INTAKE_FLOW_PARAMETER:
        return classify_intake_flow(value)

    standard = get_standard(parameter, site)
    if standard is None:
        logger.debug("No compliance standard for %s (site=%s)", parameter, site)
        return None
    return classify(value, standard)


def classify_many(values: dict[str, Any], site: str | None = None) -> dict[str, dict | None]:
    """Classify every parameter in `values`; parameters without a standard map to None."""
    return {
        parameter: classify_parameter(parameter, value, site)
        for parameter, value in values.items()
    }
