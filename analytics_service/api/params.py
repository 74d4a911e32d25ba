"""Query-string parsing and response serialization shared by the blueprints."""

from dataclasses import fields, is_dataclass
from datetime import date, datetime, timezone

from flask import request

from analytics_service.errors import ValidationError


def parse_datetime(name):
    """ISO date or timestamp from the query string; naive values are UTC."""
    value = request.args.get(name)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f'{name} must be an ISO-8601 date or timestamp') from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_int(name, default, minimum=None, maximum=None):
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer') from None
    if minimum is not None and number < minimum:
        raise ValidationError(f'{name} must be at least {minimum}')
    if maximum is not None and number > maximum:
        raise ValidationError(f'{name} must be at most {maximum}')
    return number


def to_json(value):
    """Recursively turn dataclasses, dates and tuples into JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if isinstance(value, dict):
        return {key: to_json(item) for key, item in value.items()}
    return value
