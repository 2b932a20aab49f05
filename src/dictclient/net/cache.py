from __future__ import annotations

from typing import Dict, List, Optional

from dictclient.model import Database


class DatabaseCache:
    """Name -> Database map as last reported by SHOW DATABASES.

    Insertion order is server order; a later entry with the same name
    replaces the earlier one in place.
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, Database] = {}

    def put(self, db: Database) -> None:
        self._by_name[db.name] = db

    def get(self, name: str) -> Optional[Database]:
        return self._by_name.get(name)

    def values(self) -> List[Database]:
        return list(self._by_name.values())

    @property
    def is_populated(self) -> bool:
        return bool(self._by_name)

    def clear(self) -> None:
        self._by_name.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)
