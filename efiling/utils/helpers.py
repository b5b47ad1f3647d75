"""Request parsing helpers shared by the blueprints."""


def parse_id(value):
    """Parse a positive integer id from JSON or a query string.

    Returns None for missing, non-numeric or non-positive input so callers
    can answer with a single 400.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def parse_ids(source, *names):
    """Parse several ids at once.

    Returns ``(values_dict, missing_names)``; ``missing_names`` lists every
    field that was absent or invalid.
    """
    values = {name: parse_id(source.get(name)) for name in names}
    missing = [name for name, value in values.items() if value is None]
    return values, missing
