import threading
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from geodistance.config import load_settings
from geodistance.schemas import LookupRequest, SearchResult

EVENT_TS = "2024-03-01T12:00:00Z"
HOUR_BEFORE = "2024-03-01T11:00:00Z"


class FakeSearchClient:
    """Records requests; answers with a fixed SearchResult, or raises."""

    def __init__(self, result: Union[SearchResult, BaseException, Callable[[LookupRequest], SearchResult], None] = None):
        self.result = result if result is not None else SearchResult()
        self.requests: List[LookupRequest] = []
        self.closed = False
        self._lock = threading.Lock()

    def search(self, req: LookupRequest) -> SearchResult:
        with self._lock:
            self.requests.append(req)
        if isinstance(self.result, BaseException):
            raise self.result
        if callable(self.result):
            return self.result(req)
        return self.result

    def close(self):
        self.closed = True


def hit(geo: Any, ts: str = HOUR_BEFORE, **extra) -> Dict[str, Any]:
    src = {"MLGeo": geo, "@timestamp": ts}
    src.update(extra)
    return {"_index": "logins", "_id": "x", "_source": src}


def make_event(geo: Optional[str] = "0.0,0.0", ts: str = EVENT_TS, **extra) -> Dict[str, Any]:
    data: Dict[str, Any] = {"@timestamp": ts, "user": "alice"}
    if geo is not None:
        data["MLGeo"] = geo
    data.update(extra)
    return data


@pytest.fixture
def settings_factory():
    def make(**overrides):
        overrides.setdefault("ES_QUERY", "user:%{user}")
        return load_settings(**overrides)
    return make


@pytest.fixture
def settings(settings_factory):
    return settings_factory()
