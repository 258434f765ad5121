"""CRUD command set generation.

``generate_crud`` resolves a schematic into a ``CrudSchema`` and derives four
renderable command specifications from it:

    create-<noun>   field parameters (+ row_key for caller-supplied keys)
    read-<noun>     selector parameter sets, sort and projection options
    update-<noun>   row_key + optional field parameters + merge switch
    delete-<noun>   selector parameter sets + force switch

The command set is plain data. Behavior comes from ``CrudHandler``, built
from the same schema.
"""

import re
from dataclasses import dataclass
from typing import Any

from crud_generator.core.crud_schema import CrudSchema, KeyType, resolve_schema
from crud_generator.core.parameters import (
    ParameterSpec,
    as_optional,
    derive_field_parameters,
)

OPERATIONS = ("create", "read", "update", "delete")

# Read without a selector returns every record of the partition
READ_ALL_SET = "all"

_CONTRACTS: dict[str, str] = {
    "create": "Store a new record; compress large values; allocate the row key",
    "read": "Fetch records by one selector; expand compressed values; convert markup",
    "update": "Overwrite or merge the record under a row key; owner only",
    "delete": "Remove the selected records owned by the caller, after confirmation",
}


@dataclass(frozen=True)
class CommandSpec:
    """A renderable command definition.

    Attributes:
        operation: create, read, update or delete.
        name: Command name (``<operation>-<noun-slug>``).
        parameters: Ordered parameter list.
        contract: One-line description of what the command body does.
        default_parameter_set: Selector set used when no selector is given.
    """

    operation: str
    name: str
    parameters: tuple[ParameterSpec, ...]
    contract: str
    default_parameter_set: str | None = None

    def parameter(self, name: str) -> ParameterSpec | None:
        """Look up a parameter by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping for YAML rendering."""
        data: dict[str, Any] = {
            "name": self.name,
            "operation": self.operation,
            "contract": self.contract,
        }
        if self.default_parameter_set:
            data["default_parameter_set"] = self.default_parameter_set
        data["parameters"] = [param.to_dict() for param in self.parameters]
        return data


@dataclass(frozen=True)
class CrudCommandSet:
    """The four generated commands plus the schema they were derived from."""

    schema: CrudSchema
    create: CommandSpec
    read: CommandSpec
    update: CommandSpec
    delete: CommandSpec

    @property
    def commands(self) -> tuple[CommandSpec, ...]:
        """Commands in create/read/update/delete order."""
        return (self.create, self.read, self.update, self.delete)

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping for YAML rendering."""
        schema = self.schema
        return {
            "noun": schema.noun,
            "type_name": schema.type_name,
            "table": schema.table,
            "partition": schema.partition,
            "key_type": schema.key_type.value,
            "user_scoped": schema.is_user_scoped,
            "unique_names": schema.uniqueness_by_name,
            "required_fields": sorted(schema.required_fields),
            "commands": [command.to_dict() for command in self.commands],
        }


def noun_slug(noun: str) -> str:
    """Lowercase kebab form of a noun (``CatalogWidgets`` -> ``catalog-widgets``)."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", noun.strip())
    return re.sub(r"[^a-z0-9]+", "-", spaced.lower()).strip("-")


def _switch(name: str, description: str) -> ParameterSpec:
    return ParameterSpec(name=name, param_type="switch", description=description)


def _selector(name: str, description: str, param_set: str, param_type: str = "string") -> ParameterSpec:
    return ParameterSpec(
        name=name,
        param_type=param_type,
        mandatory=param_type != "switch",
        description=description,
        parameter_set=param_set,
    )


def _create_parameters(schema: CrudSchema, fields: list[ParameterSpec]) -> list[ParameterSpec]:
    params = list(fields)
    if schema.key_type is KeyType.CALLER_SUPPLIED:
        params.append(
            ParameterSpec(
                name="row_key",
                mandatory=True,
                description="Row key for the new record",
            )
        )
    return params


def _read_parameters(schema: CrudSchema) -> list[ParameterSpec]:
    params = [
        _selector("keyword", "Match Name or Description (case-insensitive)", "keyword"),
        _selector("name", "Exact Name match", "name"),
        _selector("row_key", "Exact row key match", "row_key"),
    ]
    if schema.is_user_scoped:
        params.append(_selector("mine", "Records owned by the caller", "mine", "switch"))
        params.append(_selector("user_id", "Records owned by a user id", "user_id"))
    if schema.read_code_partition:
        params.append(_selector("read_code", "Records linked to a read code", "read_code"))
    params.extend([
        ParameterSpec(name="select", description="Properties to fetch"),
        ParameterSpec(name="sort_field", description="Property to sort by"),
        ParameterSpec(name="sort_type", description="Sort comparison type"),
        _switch("no_markdown", "Return markup without HTML conversion"),
    ])
    return params


def _update_parameters(fields: list[ParameterSpec]) -> list[ParameterSpec]:
    row_key = ParameterSpec(
        name="row_key",
        mandatory=True,
        position=0,
        description="Row key of the record to update",
    )
    return [
        row_key,
        *as_optional(fields, shift=1),
        _switch("merge", "Merge fields instead of replacing the record"),
    ]


def _delete_parameters() -> list[ParameterSpec]:
    return [
        _selector("keyword", "Match Name or Description (case-insensitive)", "keyword"),
        _selector("name", "Exact Name match", "name"),
        _selector("row_key", "Exact row key match", "row_key"),
        _switch("force", "Skip the confirmation prompt"),
    ]


def build_command_set(schema: CrudSchema) -> CrudCommandSet:
    """Derive the four command specs from a resolved schema."""
    slug = noun_slug(schema.noun)
    fields = derive_field_parameters(schema)
    parameter_lists = {
        "create": _create_parameters(schema, fields),
        "read": _read_parameters(schema),
        "update": _update_parameters(fields),
        "delete": _delete_parameters(),
    }
    specs = {
        operation: CommandSpec(
            operation=operation,
            name=f"{operation}-{slug}",
            parameters=tuple(parameter_lists[operation]),
            contract=_CONTRACTS[operation],
            default_parameter_set=READ_ALL_SET if operation == "read" else None,
        )
        for operation in OPERATIONS
    }
    return CrudCommandSet(schema=schema, **specs)


def generate_crud(table: str, partition: str, **options: Any) -> CrudCommandSet:
    """Resolve a schematic and generate its CRUD command set.

    Accepts every keyword of ``resolve_schema``.

    Raises:
        SchemaResolutionError: If the schematic cannot be resolved.
    """
    schema = resolve_schema(table, partition, **options)
    return build_command_set(schema)
