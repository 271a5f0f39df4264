import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

DATA_FILE = Path(__file__).parent / "test_data.json"


class TestDataLoader:
    """Seed data shared by the integration fixtures, read once per run."""

    __test__ = False
    _cache: Optional[Dict[str, Any]] = None

    @classmethod
    def _data(cls) -> Dict[str, Any]:
        if cls._cache is None:
            cls._cache = json.loads(DATA_FILE.read_text())
        return cls._cache

    @classmethod
    def get(cls, key: str) -> Any:
        return cls._data().get(key)

    @classmethod
    def get_copy(cls, key: str) -> Any:
        return copy.deepcopy(cls.get(key))

    @classmethod
    def rows(cls, key: str, scope: str) -> List[Dict[str, Any]]:
        """Rows of ``key`` for one database: a tenant slug or ``central``."""
        return cls.get_copy(key).get(scope, [])

    @classmethod
    def card(cls, outcome: str) -> str:
        return cls.get("cards")[outcome]
