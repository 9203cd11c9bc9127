"""
Utility functions
"""
from .datetime_utils import now_ms, parse_timestamp_ms, datetime_to_ms
from .blockchain import (
    from_units,
    to_units,
    ms_to_years,
    build_event_type,
    normalize_object_id,
    struct_name,
    generate_room_password,
    hash_password,
)

__all__ = [
    'now_ms',
    'parse_timestamp_ms',
    'datetime_to_ms',
    'from_units',
    'to_units',
    'ms_to_years',
    'build_event_type',
    'normalize_object_id',
    'struct_name',
    'generate_room_password',
    'hash_password',
]
