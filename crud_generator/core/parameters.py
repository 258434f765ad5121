"""Parameter block derivation.

Each schema field becomes one parameter of the create/update commands:

    FieldType.BOOL      -> switch
    FieldType.INT       -> int
    FieldType.FLOAT     -> double
    FieldType.DATETIME  -> datetime
    FieldType.STRING    -> string

``Name`` is pinned to position 0; the other fields get positions 1, 2, ...
in resolution order. The same specs are used by the handler to coerce
caller-supplied values.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from crud_generator.core.crud_schema import CrudSchema
from crud_generator.core.errors import FieldValueError
from crud_generator.core.field_spec import NAME_FIELD, FieldSpec, FieldType

PARAM_TYPES: dict[FieldType, str] = {
    FieldType.STRING: "string",
    FieldType.BOOL: "switch",
    FieldType.INT: "int",
    FieldType.FLOAT: "double",
    FieldType.DATETIME: "datetime",
}

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off", ""})


@dataclass(frozen=True)
class ParameterSpec:
    """One parameter of a generated command.

    Attributes:
        name: Parameter name.
        param_type: One of string, switch, int, double, datetime.
        mandatory: Caller must supply a value.
        position: Positional index, or None for named-only parameters.
        multiline: Render a multi-line input.
        rich_text: Render a rich-text (HTML) input.
        description: Help text.
        parameter_set: Mutually exclusive selector group, if any.
    """

    name: str
    param_type: str = "string"
    mandatory: bool = False
    position: int | None = None
    multiline: bool = False
    rich_text: bool = False
    description: str = ""
    parameter_set: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping for YAML rendering (defaults omitted)."""
        data: dict[str, Any] = {"name": self.name, "type": self.param_type}
        if self.mandatory:
            data["mandatory"] = True
        if self.position is not None:
            data["position"] = self.position
        if self.multiline:
            data["multiline"] = True
        if self.rich_text:
            data["rich_text"] = True
        if self.parameter_set:
            data["parameter_set"] = self.parameter_set
        if self.description:
            data["description"] = self.description
        return data


def parameter_type_for(spec: FieldSpec) -> str:
    """Target parameter type for a field.

    Follows the inferred field type only; a ``Date*`` name yields datetime
    through type inference unless a bool or numeric hint was given.
    """
    return PARAM_TYPES[spec.field_type]


def derive_field_parameters(schema: CrudSchema) -> list[ParameterSpec]:
    """Build the ordered field parameter list for a schema."""
    params: list[ParameterSpec] = []
    next_position = 1
    for spec in schema.fields:
        if spec.name == NAME_FIELD:
            position = 0
        else:
            position = next_position
            next_position += 1
        params.append(
            ParameterSpec(
                name=spec.name,
                param_type=parameter_type_for(spec),
                mandatory=spec.name in schema.required_fields,
                position=position,
                multiline=spec.multiline,
                rich_text=spec.rich_text,
                description=spec.description,
            )
        )
    return params


def as_optional(params: list[ParameterSpec], *, shift: int = 0) -> list[ParameterSpec]:
    """Copy parameters as optional, shifting positions by ``shift``."""
    return [
        replace(
            param,
            mandatory=False,
            position=None if param.position is None else param.position + shift,
        )
        for param in params
    ]


def coerce_value(param: ParameterSpec, value: Any) -> Any:
    """Convert a supplied value to the parameter's target type.

    Datetimes without an offset are taken as UTC.

    Raises:
        FieldValueError: If the value cannot be converted.
    """
    if value is None:
        return None
    try:
        if param.param_type == "switch":
            return _coerce_bool(value)
        if param.param_type == "int":
            return int(value)
        if param.param_type == "double":
            return float(value)
        if param.param_type == "datetime":
            return _aware_datetime(value)
    except (TypeError, ValueError) as exc:
        raise FieldValueError(
            f"Value {value!r} for '{param.name}' is not a valid {param.param_type}"
        ) from exc
    return value if isinstance(value, str) else str(value)


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _aware_datetime(value: Any) -> datetime:
    """Parse a datetime, reading naive values as UTC."""
    result = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result
