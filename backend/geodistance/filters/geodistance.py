# geodistance/filters/geodistance.py
import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

from ..config import Settings, load_query_template
from ..errors import ComputationError, ConfigError, ExtractionError, GeoDistanceError, QueryExecutionError
from ..event import Event, to_epoch
from ..schemas import Evaluation, LookupRequest
from ..search import query as query_builder
from ..search.client import SearchClient
from ..search.pool import ClientPool
from ..utils.geo import GeoPoint, distance, parse_geo_point
from ..utils.paths import ABSENT, extract

logger = logging.getLogger(__name__)

DISTANCE_FIELD = "geodistance"


def _hit_source(hit: Dict[str, Any]) -> Dict[str, Any]:
    # Elasticsearch keeps the document under _source; bare documents are accepted too
    src = hit.get("_source")
    return src if isinstance(src, dict) else hit


class GeoDistanceFilter:
    """
    Tags an event when the distance from the entity's previous event, found in
    Elasticsearch, could not have been travelled at SPEED_TRIGGER per hour.

    filter() never raises for per-event problems: the event gets the
    TAG_ON_FAILURE tags instead and the returned Evaluation says why.
    """

    def __init__(self, settings: Settings, client_factory: Optional[Callable[[], SearchClient]] = None):
        self.settings = settings
        self._client_factory = client_factory or (lambda: SearchClient.from_settings(settings))
        self.query_template: Optional[str] = None
        self.clients_pool: Optional[ClientPool] = None

    def register(self) -> "GeoDistanceFilter":
        s = self.settings
        if s.QUERY_TEMPLATE:
            self.query_template = load_query_template(s.QUERY_TEMPLATE)
        elif not s.ES_QUERY:
            raise ConfigError("either ES_QUERY or QUERY_TEMPLATE must be set")
        if s.RESULT_SIZE < 1:
            raise ConfigError("RESULT_SIZE must be at least 1")
        if not math.isfinite(s.SPEED_TRIGGER) or s.SPEED_TRIGGER < 0:
            raise ConfigError(f"SPEED_TRIGGER must be a finite number >= 0, got {s.SPEED_TRIGGER}")
        if s.ES_SSL and s.ES_CA_FILE and not os.path.isfile(s.ES_CA_FILE):
            raise ConfigError(f"ES_CA_FILE not found: {s.ES_CA_FILE}")
        self.clients_pool = ClientPool(self._client_factory)
        return self

    def close(self):
        if self.clients_pool is not None:
            self.clients_pool.close()

    # ---- per event ----

    def filter(self, event: Event, worker_id: Optional[Hashable] = None) -> Evaluation:
        if self.clients_pool is None:
            raise ConfigError("filter used before register()")
        result = Evaluation()
        request: Optional[LookupRequest] = None
        triggered = False
        try:
            request = query_builder.build(event, self.settings, self.query_template)
            logger.debug("Querying elasticsearch for lookup: %s", request.model_dump(exclude_none=True))
            res = self.clients_pool.acquire(worker_id).search(request)
            if res.shard_failures is not None:
                raise QueryExecutionError(f"Elasticsearch query error: {res.shard_failures}")
            if res.hits:
                triggered = self._scan(event, res.hits, result)
        except GeoDistanceError as e:
            self._failed(event, request, result, e, e.kind)
        except Exception as e:
            # malformed hits can surface as TypeError/KeyError etc.
            self._failed(event, request, result, e, "unexpected")
        else:
            result.status = "tagged" if triggered else "done"

        self._apply(event, result)
        self.filter_matched(event)
        return result

    def _scan(self, event: Event, hits: List[Dict[str, Any]], result: Evaluation) -> bool:
        s = self.settings
        current = self._event_location(event)
        event_ts = event.timestamp

        for hit in hits:
            src = _hit_source(hit)
            geo = extract(src, s.GEO_FIELD)
            if geo is ABSENT:
                raise ExtractionError(f"hit has no {s.GEO_FIELD}")
            dist = distance(current, parse_geo_point(geo), s.METRIC_SYSTEM)
            if not math.isfinite(dist):
                raise ComputationError(f"distance is not finite: {dist}")
            result.distance = dist
            result.hits_examined += 1

            hit_ts = extract(src, "@timestamp")
            if hit_ts is ABSENT:
                raise ExtractionError("hit has no @timestamp")
            delta_hours = (event_ts - to_epoch(hit_ts)) / 3600.0
            if not math.isfinite(delta_hours):
                raise ComputationError(f"elapsed time is not finite: {delta_hours}")

            if dist > s.SPEED_TRIGGER * delta_hours:
                return True
        return False

    def _event_location(self, event: Event) -> GeoPoint:
        geo = extract(event.to_dict(), self.settings.GEO_FIELD)
        if geo is ABSENT:
            raise ExtractionError(f"event has no {self.settings.GEO_FIELD}")
        return parse_geo_point(geo)

    def _failed(self, event: Event, request: Optional[LookupRequest], result: Evaluation, e: Exception, kind: str):
        result.status = "failed"
        result.error = kind
        logger.warning(
            "Failed to query elasticsearch for previous event index=%s query=%s event=%s error=%r",
            request.index if request else self.settings.ES_INDEX,
            request.model_dump(exclude_none=True) if request else None,
            event, e,
            exc_info=kind == "unexpected",
        )

    def _apply(self, event: Event, result: Evaluation):
        s = self.settings
        if s.KEEP_RESULT and result.distance is not None:
            event.set(DISTANCE_FIELD, result.distance)
        if result.status == "tagged":
            event.tag(s.TRIGGER_TAG)
        elif result.status == "failed":
            for tag in s.TAG_ON_FAILURE:
                event.tag(tag)

    def filter_matched(self, event: Event):
        """Common decorations, applied to every event that went through the filter."""
        s = self.settings
        for ref, template in s.ADD_FIELD.items():
            event.set(event.sprintf(ref), event.sprintf(template))
        for tag in s.ADD_TAG:
            event.tag(event.sprintf(tag))
        for ref in s.REMOVE_FIELD:
            event.remove(event.sprintf(ref))
        for tag in s.REMOVE_TAG:
            event.untag(event.sprintf(tag))

    # ---- batches ----

    def filter_many(self, events: Iterable[Event], workers: int = 4) -> List[Evaluation]:
        """Runs filter() on a thread pool; results keep the input order."""
        events = list(events)
        if workers <= 1:
            return [self.filter(ev) for ev in events]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="geodistance") as pool:
            return list(pool.map(self.filter, events))
