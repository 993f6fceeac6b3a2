"""Parsers for request values that arrive as JSON or form fields."""
from marketplace.exceptions import BusinessLogicError

TRUE_STRINGS = ('true', '1', 'on', 'yes')
FALSE_STRINGS = ('false', '0', 'off', 'no')


def parse_id(value, field: str) -> int:
    """Parse a required integer id; booleans and non-numeric values are rejected."""
    if isinstance(value, bool) or value in (None, ''):
        raise BusinessLogicError(f'{field} is required')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BusinessLogicError(f'{field} must be an integer')


def parse_id_list(value, field: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise BusinessLogicError(f'{field} must be a list')
    return [parse_id(item, field) for item in value]


def parse_flag(value, field: str) -> bool:
    """
    Parse a boolean flag.

    Form posts send flags as text, so 'true'/'false' (and 1/0, on/off, yes/no)
    are accepted; any other value is rejected rather than coerced.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise BusinessLogicError(f'{field} must be true or false')
