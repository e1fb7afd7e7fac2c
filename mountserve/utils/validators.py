"""Validation utilities"""

import re
import shlex
from typing import List, Optional, Tuple


def validate_s3_bucket(bucket: str) -> bool:
    """Validate S3 bucket name"""
    pattern = r'^[a-z0-9][a-z0-9.\-]*[a-z0-9]$'
    return bool(re.match(pattern, bucket)) and 3 <= len(bucket) <= 63


def validate_connection_string(connection_string: str) -> bool:
    """Validate sshfs connection string format ([user@]host:[path])"""
    pattern = r'^([^@\s]+@)?[^:@\s]+:\S*$'
    return bool(re.match(pattern, connection_string))


def parse_option_list(options: Optional[str]) -> Tuple[str, ...]:
    """
    Split a comma separated option list.

    Args:
        options: Options string such as "IdentityFile=/key,allow_other"

    Returns:
        Tuple of stripped, non-empty options in their original order
    """
    if not options:
        return ()
    return tuple(opt.strip() for opt in options.split(',') if opt.strip())


def parse_extra_args(extra_args: Optional[str]) -> List[str]:
    """Split shell-style extra arguments into an argument list"""
    if not extra_args or not extra_args.strip():
        return []
    try:
        return shlex.split(extra_args)
    except ValueError as e:
        raise ValueError(f"Invalid extra arguments: {e}")
