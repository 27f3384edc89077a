from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Optional


class ChartType(str, Enum):
    number = "number"
    bar = "bar"
    line = "line"
    pie = "pie"
    doughnut = "doughnut"
    radar = "radar"
    polarArea = "polarArea"
    area = "area"


ALL_TYPES: FrozenSet[ChartType] = frozenset(ChartType)
SERIES_TYPES: FrozenSet[ChartType] = ALL_TYPES - {ChartType.number}


@dataclass(frozen=True)
class Classification:
    allowed_types: FrozenSet[ChartType]
    # None means "keep whatever the user already picked"
    default_type: Optional[ChartType]

    def allows(self, chart_type) -> bool:
        try:
            return ChartType(chart_type) in self.allowed_types
        except ValueError:
            return False

    def to_dict(self):
        # stable order for clients: enumeration order
        return {
            "allowedTypes": [t.value for t in ChartType if t in self.allowed_types],
            "defaultType": self.default_type.value if self.default_type else None,
        }


def unavailable() -> Classification:
    return Classification(ALL_TYPES, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def classify(payload: Any) -> Classification:
    """Infer which chart types can render a data endpoint's payload.

    Scalar ``{value}`` payloads only render as a number, categorical
    ``{labels, values}`` payloads render as any series chart. Anything else
    is treated permissively. Never raises.
    """
    if not isinstance(payload, dict):
        return Classification(ALL_TYPES, ChartType.bar)

    if _is_number(payload.get("value")):
        return Classification(frozenset({ChartType.number}), ChartType.number)

    labels = payload.get("labels")
    values = payload.get("values")
    if (
        isinstance(labels, list)
        and isinstance(values, list)
        and len(labels) == len(values)
        and all(isinstance(label, str) for label in labels)
    ):
        return Classification(SERIES_TYPES, ChartType.bar)

    return Classification(ALL_TYPES, ChartType.bar)
