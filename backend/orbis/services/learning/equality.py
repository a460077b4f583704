"""
Structural equality for test case comparison.

Expected values arrive as JSON-like data, actual values come from user code,
so comparison is structural rather than identity or repr based:

- bool only equals bool (True != 1)
- int vs int is exact; any other numeric pair uses math.isclose
  (rel/abs tolerance 1e-9), and NaN equals NaN
- dicts need the same key set, compared order-insensitively; a missing
  key is not the same as a key mapped to None
- list and tuple are interchangeable and compared element-wise in order
- sets only compare to sets
- everything else falls back to ==
"""

import math
from collections.abc import Mapping
from typing import Any

REL_TOLERANCE = 1e-9
ABS_TOLERANCE = 1e-9


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numbers_equal(actual, expected) -> bool:
    if isinstance(actual, int) and isinstance(expected, int):
        return actual == expected

    actual, expected = float(actual), float(expected)
    if math.isnan(actual) or math.isnan(expected):
        return math.isnan(actual) and math.isnan(expected)

    return math.isclose(actual, expected, rel_tol=REL_TOLERANCE, abs_tol=ABS_TOLERANCE)


def values_equal(actual: Any, expected: Any) -> bool:
    """
    Compare a test's actual return value with its expected value.

    Args:
        actual: Value returned by the submitted function
        expected: Value declared by the test case

    Returns:
        True if the values are structurally equal
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected

    if _is_number(actual) and _is_number(expected):
        return _numbers_equal(actual, expected)

    if isinstance(actual, Mapping) or isinstance(expected, Mapping):
        if not (isinstance(actual, Mapping) and isinstance(expected, Mapping)):
            return False
        if set(actual.keys()) != set(expected.keys()):
            return False
        return all(values_equal(actual[key], expected[key]) for key in expected)

    if isinstance(actual, (list, tuple)) or isinstance(expected, (list, tuple)):
        if not (isinstance(actual, (list, tuple)) and isinstance(expected, (list, tuple))):
            return False
        if len(actual) != len(expected):
            return False
        return all(values_equal(a, e) for a, e in zip(actual, expected))

    if isinstance(actual, (set, frozenset)) or isinstance(expected, (set, frozenset)):
        if not (
            isinstance(actual, (set, frozenset)) and isinstance(expected, (set, frozenset))
        ):
            return False
        return actual == expected

    try:
        return bool(actual == expected)
    except Exception:
        # User-defined __eq__ may raise or return something without a truth value
        return False
