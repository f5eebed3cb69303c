"""
Row serialization shared by all models.

Store backends hand out detached model instances; these helpers turn them
into plain dicts for API responses, audit snapshots and compensation.
"""
from datetime import datetime, date
from typing import Any, Dict


class RowMixin:

    def to_dict(self) -> Dict[str, Any]:
        """Column values keyed by column name."""
        return {column.key: getattr(self, column.key) for column in self.__table__.columns}

    def to_json_dict(self) -> Dict[str, Any]:
        """Like to_dict() but with datetimes rendered as ISO strings."""
        data = {}
        for key, value in self.to_dict().items():
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            data[key] = value
        return data
