# geodistance/search/query.py
import json
from typing import Optional

from ..config import Settings
from ..errors import QueryExecutionError
from ..event import Event
from ..schemas import LookupRequest


def time_window(hours: int) -> str:
    return f" AND @timestamp:[now-{hours}h TO now]"


def build(event: Event, settings: Settings, template: Optional[str] = None) -> LookupRequest:
    """Lookup request for the previous event of the same entity."""
    index = event.sprintf(settings.ES_INDEX)

    if template is not None:
        rendered = event.sprintf(template)
        try:
            body = json.loads(rendered)
        except ValueError as e:
            raise QueryExecutionError(f"query template does not render to JSON: {e}") from e
        if not isinstance(body, dict):
            raise QueryExecutionError("query template must render to a JSON object")
        return LookupRequest(index=index, body=body)

    q = event.sprintf(settings.ES_QUERY or "") + time_window(settings.TIME_INTERVAL)
    return LookupRequest(
        index=index,
        q=q,
        size=settings.RESULT_SIZE,
        sort=settings.ES_SORT if settings.ENABLE_SORT else None,
    )
