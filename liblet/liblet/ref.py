"""References to stored objects."""

from .constants import HASH_CHARSET, HASH_LENGTH


class RefError(Exception):
    """Exception raised for malformed references."""


class HashRef(str):
    """A reference to an object or commit by its hex digest."""


def is_hash(value: str) -> bool:
    """Check whether a string looks like a full object digest.

    :param value: The string to check.
    :return: True if the string has the digest length and only hex characters."""
    return len(value) == HASH_LENGTH and all(c in HASH_CHARSET for c in value)


def to_hash_ref(value: str) -> HashRef:
    """Convert a string to a HashRef, validating its shape.

    :param value: A full hex digest.
    :return: The digest as a HashRef.
    :raises RefError: If the value is not a full digest."""
    if not isinstance(value, str) or not is_hash(value):
        msg = f'Invalid hash reference: {value!r}'
        raise RefError(msg)

    return HashRef(value)
