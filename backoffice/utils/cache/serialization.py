"""JSON encoding shared by the cache stores and the ETag layer."""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime, UUID and Decimal objects."""
    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def dumps(value: Any) -> str:
    """Serialize a cache value."""
    return json.dumps(value, ensure_ascii=False, cls=DateTimeEncoder)


def canonical_dumps(value: Any) -> str:
    """Serialize with sorted keys and compact separators (stable across key order)."""
    return json.dumps(
        value,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
        cls=DateTimeEncoder,
    )
