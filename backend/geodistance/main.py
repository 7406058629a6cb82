# geodistance/main.py
import logging
import threading
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_settings, setup_logging
from .event import Event
from .filters.geodistance import GeoDistanceFilter
from .schemas import BatchIn, BatchOut, FilterOut

logger = logging.getLogger(__name__)

# ------------------------- App & CORS -------------------------

app = FastAPI(title="GeoDistance Filter", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------- State -------------------------

FILTER: Optional[GeoDistanceFilter] = None
_stats = {"events": 0, "tagged": 0, "failed": 0, "start": time.time()}
_stats_lock = threading.Lock()


def _run(data: Dict[str, Any]) -> FilterOut:
    assert FILTER is not None, "filter not registered"
    event = Event(data)
    evaluation = FILTER.filter(event)
    with _stats_lock:
        _stats["events"] += 1
        if evaluation.status in ("tagged", "failed"):
            _stats[evaluation.status] += 1
    return FilterOut(event=event.to_dict(), evaluation=evaluation)


# ------------------------- API -------------------------
# plain `def` endpoints run in the threadpool, one pooled search client per worker thread

@app.get("/api/health")
def health():
    uptime = time.time() - _stats["start"]
    return {
        "status": "ok",
        "events": _stats["events"],
        "tagged": _stats["tagged"],
        "failed": _stats["failed"],
        "uptime_sec": int(uptime),
        "clients": len(FILTER.clients_pool) if FILTER and FILTER.clients_pool else 0,
    }


@app.post("/api/filter", response_model=FilterOut)
def filter_event(event: Dict[str, Any]):
    return _run(event)


@app.post("/api/filter/batch", response_model=BatchOut)
def filter_batch(batch: BatchIn):
    return BatchOut(results=[_run(ev) for ev in batch.events])


# ------------------------- Lifecycle -------------------------

@app.on_event("startup")
def on_start():
    global FILTER
    if FILTER is not None:
        return
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)
    # ConfigError here aborts startup
    FILTER = GeoDistanceFilter(settings).register()
    logger.info("geodistance filter registered (index=%r)", settings.ES_INDEX)


@app.on_event("shutdown")
def on_stop():
    global FILTER
    if FILTER is not None:
        FILTER.close()
        FILTER = None
