from sqlalchemy.orm import class_mapper


def sqlalchemy_to_dict(obj):
    """Convert a SQLAlchemy object to a JSON-friendly dictionary."""
    if not obj:
        return None
    mapper = class_mapper(obj.__class__)
    result = {}
    for c in mapper.columns:
        value = getattr(obj, c.key)
        # Convert date/datetime objects to ISO format strings
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        # Convert Decimal objects to strings so no precision is lost
        elif hasattr(value, 'normalize') and hasattr(value, 'from_float'):
            value = str(value)
        # Convert enum types to their stored value
        elif hasattr(value, 'value') and hasattr(value, 'name'):
            value = value.value
        result[c.key] = value
    return result


__all__ = ['sqlalchemy_to_dict']
