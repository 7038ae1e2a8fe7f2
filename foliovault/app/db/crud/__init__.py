"""CRUD operations package.

- user.py: User lookups and registration
- exchange_key.py: Encrypted exchange credential records
"""

from foliovault.app.db.crud.user import (
    create_user,
    get_user_by_id,
    lookup_user_by_token_hash,
)
from foliovault.app.db.crud.exchange_key import (
    create_key,
    delete_key,
    find_active_keys_for_user,
    get_key_for_user,
    list_keys_for_user,
    mark_used,
)

__all__ = [
    "create_user",
    "get_user_by_id",
    "lookup_user_by_token_hash",
    "create_key",
    "delete_key",
    "find_active_keys_for_user",
    "get_key_for_user",
    "list_keys_for_user",
    "mark_used",
]
