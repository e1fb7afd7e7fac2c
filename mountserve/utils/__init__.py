"""Utilities package"""

from mountserve.utils.logger import get_logger, redact, setup_logging, RedactingFilter
from mountserve.utils.validators import (
    validate_s3_bucket,
    validate_connection_string,
    parse_option_list,
    parse_extra_args,
)

__all__ = [
    'get_logger',
    'redact',
    'setup_logging',
    'RedactingFilter',
    'validate_s3_bucket',
    'validate_connection_string',
    'parse_option_list',
    'parse_extra_args',
]
