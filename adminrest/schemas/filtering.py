import json
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from adminrest.core.exceptions import InvalidFilterOperatorError, ValidationError


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUAL = "not-equal"
    GREATER_THAN = "greater-than"
    LESS_THAN = "less-than"
    GREATER_OR_EQUAL = "greater-or-equal"
    LESS_OR_EQUAL = "less-or-equal"
    LIKE = "like"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def parse(cls, operator: str, field: str | None = None) -> "FilterOperator":
        """Resolve an operator string, accepting the legacy admin client spellings."""
        normalized = re.sub(r"[\s_]+", "-", str(operator).strip().lower())
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidFilterOperatorError(operator, field) from None


_ALIASES = {
    "eq": "equals",
    "ne": "not-equal",
    "gt": "greater-than",
    "lt": "less-than",
    "gte": "greater-or-equal",
    "lte": "less-or-equal",
    "greater-than-or-equal-to": "greater-or-equal",
    "less-than-or-equal-to": "less-or-equal",
}


class FilterDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    operator: str
    value: Any = ""

    @property
    def is_relationship(self) -> bool:
        return "." in self.field


_descriptor_list = TypeAdapter(list[FilterDescriptor])
_BRACKET_KEY = re.compile(r"^filters\[(\d+)\]\[(\w+)\]$")


def parse_filter_params(params: Mapping[str, Any] | Any) -> list[FilterDescriptor]:
    """Read filter descriptors from list endpoint query parameters.

    Two encodings are understood:

    - bracket notation, ``filters[0][field]=age&filters[0][operator]=greater than``
    - JSON, either one array (``filters=[{...}, ...]``) or one object per
      repeated ``filters`` parameter
    """
    if hasattr(params, "multi_items"):
        items = params.multi_items()
    else:
        items = list(params.items())

    indexed: dict[int, dict[str, Any]] = {}
    raw: list[Any] = []
    for key, value in items:
        match = _BRACKET_KEY.match(key)
        if match:
            indexed.setdefault(int(match.group(1)), {})[match.group(2)] = value
        elif key in ("filters", "filters[]"):
            try:
                decoded = json.loads(value)
            except (TypeError, json.JSONDecodeError):
                raise ValidationError("filters", "filters must be JSON encoded") from None
            if isinstance(decoded, list):
                raw.extend(decoded)
            else:
                raw.append(decoded)

    raw.extend(indexed[position] for position in sorted(indexed))

    try:
        return _descriptor_list.validate_python(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            "filters",
            "each filter needs a field and an operator",
            {
                "field": "filters",
                "errors": [
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                ],
            },
        ) from None
