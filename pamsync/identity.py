"""Mapping between local identifiers and remote document keys.

Local identifiers are UUIDs. Remote keys are their canonical string form:
lowercase, hyphenated, 36 characters. Parsing accepts either case but
nothing else (no braces, no ``urn:uuid:`` prefix, no unhyphenated hex).
"""

import re
import uuid

from pamsync.errors import IdentifierParseError

_CANONICAL_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def to_remote_key(local_id: uuid.UUID) -> str:
    """Stringify a local identifier into its remote key."""
    if not isinstance(local_id, uuid.UUID):
        raise IdentifierParseError(local_id, "local identifier must be a UUID")
    return str(local_id)


def to_local_id(remote_key: object) -> uuid.UUID:
    """Parse a remote key back into a local identifier.

    Raises:
        IdentifierParseError: If the key has the wrong type, length or alphabet.
    """
    if not isinstance(remote_key, str):
        raise IdentifierParseError(remote_key, "remote key must be a string")
    if len(remote_key) != 36:
        raise IdentifierParseError(remote_key, f"expected 36 characters, got {len(remote_key)}")
    if not _CANONICAL_UUID.match(remote_key):
        raise IdentifierParseError(remote_key)
    return uuid.UUID(remote_key)


def is_remote_key(value: object) -> bool:
    """Check whether ``value`` parses as a remote key."""
    try:
        to_local_id(value)
    except IdentifierParseError:
        return False
    return True
