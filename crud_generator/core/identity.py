"""Caller identity resolution for user-scoped schemas.

The caller's id is resolved in priority order:

    1. The authenticated session user id carried by the RequestContext.
    2. An application key on the request, looked up in the user partition.
       A key with no matching user resolves to None (the operation is
       rejected by the handler).
    3. The local OS account name.
"""

import getpass
from collections.abc import Callable
from dataclasses import dataclass

from crud_generator.core.crud_schema import CrudSchema
from crud_generator.core.table_store import TableStore

USER_ID_FIELD = "UserID"
APP_KEY_FIELD = "SecondaryApiKey"
OWNER_FIELD = "OwnerID"


@dataclass(frozen=True)
class RequestContext:
    """Explicit per-call identity context.

    Attributes:
        session_user_id: Authenticated user id of an active session.
        app_key: Application key carried by an inbound request.
    """

    session_user_id: str | None = None
    app_key: str | None = None


def local_account_name() -> str:
    """Name of the OS account running the process."""
    return getpass.getuser()


def resolve_user_id(
    schema: CrudSchema,
    store: TableStore,
    context: RequestContext,
    account_name_provider: Callable[[], str] | None = None,
) -> str | None:
    """Resolve the caller's user id, or None for an unknown app key."""
    if context.session_user_id:
        return context.session_user_id

    if context.app_key:
        users = store.search(
            schema.table,
            schema.user_partition,
            where={APP_KEY_FIELD: context.app_key},
        )
        for user in users:
            user_id = user.get(USER_ID_FIELD) or user.get("RowKey")
            if user_id:
                return str(user_id)
        return None

    provider = account_name_provider or local_account_name
    return provider()
