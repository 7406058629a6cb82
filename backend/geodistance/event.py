# geodistance/event.py
import datetime
import json
import re
from typing import Any, Dict, List, Optional

from .errors import ExtractionError
from .utils.paths import ABSENT, extract_path, extract_value

TIMESTAMP = "@timestamp"
TAGS = "tags"
EPOCH_MILLIS_ABOVE = 1e11

_REF = re.compile(r"%\{([^}]+)\}")
_JODA = re.compile(r"(Y+|y+|M+|d+|H+|m+|s+|S+)")
_JODA_TO_STRFTIME = {
    "YYYY": "%Y", "yyyy": "%Y", "YY": "%y", "yy": "%y",
    "MM": "%m", "dd": "%d", "HH": "%H", "mm": "%M", "ss": "%S",
}


def to_epoch(value: Any) -> float:
    """
    Seconds since epoch from a number or an ISO-8601 string (naive = UTC).

    Numbers are epoch seconds, except that magnitudes above EPOCH_MILLIS_ABOVE
    (year ~5138 in seconds) are read as epoch milliseconds, the way
    Elasticsearch stores dates.
    """
    if isinstance(value, bool):
        raise ExtractionError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        if abs(value) > EPOCH_MILLIS_ABOVE:
            return value / 1000.0
        return float(value)
    if isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ExtractionError(f"not a timestamp: {value!r}") from e
    else:
        raise ExtractionError(f"not a timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.timestamp()


def _joda_format(dt: datetime.datetime, fmt: str) -> str:
    def repl(m):
        tok = m.group(1)
        if tok[0] == "S":
            return f"{dt.microsecond // 1000:03d}"[:len(tok)]
        return dt.strftime(_JODA_TO_STRFTIME.get(tok, tok))
    return _JODA.sub(repl, fmt)


class Event:
    """
    Wrapper around a plain dict as delivered by the host pipeline.
    Field references are either 'name' or '[nested][name]'.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = data if data is not None else {}

    def to_dict(self) -> Dict[str, Any]:
        return self._data

    def get(self, ref: str, default: Any = None) -> Any:
        v = extract_value(self._data, extract_path(ref))
        return default if v is ABSENT else v

    def includes(self, ref: str) -> bool:
        return extract_value(self._data, extract_path(ref)) is not ABSENT

    def set(self, ref: str, value: Any):
        path = extract_path(ref)
        node = self._data
        for key in path[:-1]:
            nxt = node.get(key)
            if not isinstance(nxt, dict):
                nxt = {}
                node[key] = nxt
            node = nxt
        node[path[-1]] = value

    def remove(self, ref: str) -> Any:
        path = extract_path(ref)
        parent = extract_value(self._data, path[:-1])
        if isinstance(parent, dict):
            return parent.pop(path[-1], None)
        return None

    # ---- tags ----

    @property
    def tags(self) -> List[str]:
        tags = self._data.get(TAGS)
        return list(tags) if isinstance(tags, list) else []

    def tag(self, name: str):
        tags = self._data.get(TAGS)
        if not isinstance(tags, list):
            tags = [] if tags is None else [tags]
            self._data[TAGS] = tags
        if name not in tags:
            tags.append(name)

    def untag(self, name: str):
        tags = self._data.get(TAGS)
        if isinstance(tags, list) and name in tags:
            tags.remove(name)

    # ---- time / templating ----

    @property
    def timestamp(self) -> float:
        v = self.get(TIMESTAMP)
        if v is None:
            raise ExtractionError(f"event has no {TIMESTAMP}")
        return to_epoch(v)

    def sprintf(self, template: str) -> str:
        """
        %{field} / %{[a][b]} are replaced with the field value; %{+YYYY.MM.dd}
        formats @timestamp (UTC). Unresolved references stay as they are.
        """
        if "%{" not in template:
            return template

        def repl(m):
            ref = m.group(1)
            if ref.startswith("+"):
                raw = self.get(TIMESTAMP)
                if raw is None:
                    return m.group(0)
                dt = datetime.datetime.fromtimestamp(to_epoch(raw), tz=datetime.timezone.utc)
                return _joda_format(dt, ref[1:])
            v = extract_value(self._data, extract_path(ref))
            if v is ABSENT or v is None:
                return m.group(0)
            if isinstance(v, (dict, list)):
                return json.dumps(v)
            return str(v)

        return _REF.sub(repl, template)

    def __repr__(self):
        return f"Event({self._data!r})"
