"""``default=`` hook for json.dumps, shared by log records and checkpoint files."""

import dataclasses
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any


def json_serializer(obj: Any) -> Any:
    """ISO strings for dates, values for enums, dicts for dataclasses, str() otherwise."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    # Path and anything unknown
    return str(obj)


__all__ = ["json_serializer"]
