# geodistance/utils/paths.py
from typing import Any, List, Mapping


class _Absent:
    """Returned by extract_value when the path does not resolve."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "ABSENT"


ABSENT = _Absent()


def extract_path(path_reference: str) -> List[str]:
    """'field' -> ['field'], '[a][b][c]' -> ['a', 'b', 'c']."""
    if not (path_reference.startswith("[") and path_reference.endswith("]")):
        return [path_reference]
    return path_reference[1:-1].split("][")


def extract_value(source: Any, path: List[str]) -> Any:
    memo = source
    for fragment in path:
        if not isinstance(memo, Mapping) or fragment not in memo:
            return ABSENT
        memo = memo[fragment]
    return memo


def extract(source: Any, path_reference: str) -> Any:
    return extract_value(source, extract_path(path_reference))
