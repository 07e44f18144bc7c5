def to_int(value: object) -> int | None:
    """Coerce a value to an integer if possible.

    Booleans and non-integral floats are rejected so that payload flags never
    masquerade as counts.

    Args:
        value: Value to coerce.

    Returns:
        Integer value or None.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
