"""Exceptions raised by schema resolution, storage wiring and handlers."""


class SchemaResolutionError(ValueError):
    """Raised when a schematic cannot be turned into a CRUD schema.

    Generation is aborted; no partial command set is produced.
    """


class QueryTooBroadError(ValueError):
    """Raised when a keyword query would match every record."""

    def __init__(self, keyword: str) -> None:
        self.keyword = keyword
        super().__init__(
            f"Keyword '{keyword}' is too broad; "
            + "use a read without a keyword to list all records"
        )


class FieldValueError(ValueError):
    """Raised when a supplied value is missing or cannot be coerced."""


class StorageConfigError(ValueError):
    """Raised when storage account settings cannot be resolved."""

    def __init__(self, setting_name: str) -> None:
        self.setting_name = setting_name
        super().__init__(
            f"Storage setting '{setting_name}' is not set "
            + "(environment variable or crud.yaml settings)"
        )


class KeyAllocationError(RuntimeError):
    """Raised when no free row key could be allocated."""
