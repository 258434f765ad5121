"""
CRUD Generator

A library for deriving Create/Read/Update/Delete command sets from a
table/partition schematic and running them against a partitioned
table store.
"""

__version__ = "0.1.0"

from crud_generator.core.command_specs import generate_crud
from crud_generator.core.handler import CrudHandler

__all__ = [
    "CrudHandler",
    "generate_crud",
]
