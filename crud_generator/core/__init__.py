"""Core CRUD generation and handling logic."""

from crud_generator.core.command_specs import (
    CommandSpec,
    CrudCommandSet,
    generate_crud,
)
from crud_generator.core.crud_schema import CrudSchema, KeyType, resolve_schema
from crud_generator.core.handler import CrudHandler, CrudOutcome, OutcomeStatus
from crud_generator.core.identity import RequestContext

__all__ = [
    "CommandSpec",
    "CrudCommandSet",
    "CrudHandler",
    "CrudOutcome",
    "CrudSchema",
    "KeyType",
    "OutcomeStatus",
    "RequestContext",
    "generate_crud",
    "resolve_schema",
]
