"""
Relay global id helpers.

The admin UI sends either Relay global ids ("Event:123" base64 encoded) or raw
database ids, depending on the screen. These helpers accept both.
"""

from graphql_relay import from_global_id, to_global_id

__all__ = ["decode_id", "local_id", "to_global_id"]


def local_id(value: str | int, type_name: str) -> str:
    """Return the database id for `value`.

    Decodes a global id of the given type; anything else is taken as a raw id.
    """
    raw = str(value)
    resolved = from_global_id(raw)
    if resolved.type == type_name:
        return resolved.id
    return raw


def decode_id(value: str | int) -> str:
    """Decode a global id of any type, falling back to the raw value."""
    raw = str(value)
    resolved = from_global_id(raw)
    if resolved.type and resolved.id:
        return resolved.id
    return raw
