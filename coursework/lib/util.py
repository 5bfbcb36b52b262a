import decimal
import typing as t
from collections.abc import Mapping

KT = t.TypeVar("KT")
VT = t.TypeVar("VT")
T = t.TypeVar("T", bound=dict[t.Any, t.Any])
RecursiveMapping = VT | Mapping[KT, "RecursiveMapping[KT, VT]"]


def deep_update(
    d1: dict[KT, RecursiveMapping[KT, VT]], d2: Mapping[KT, RecursiveMapping[KT, VT]]
) -> dict[KT, RecursiveMapping[KT, VT]]:
    result = d1.copy()
    for k, v in d2.items():
        if isinstance(v, Mapping) and k in result and isinstance(result[k], Mapping):
            result[k] = deep_update(result[k], v)  # type: ignore
        else:
            result[k] = v
    return result


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round to `ndigits` places with ties going away from zero (round(2.5) is 2, this gives 3)."""
    exponent = decimal.Decimal(1).scaleb(-ndigits)
    return float(decimal.Decimal(str(value)).quantize(exponent, rounding=decimal.ROUND_HALF_UP))
