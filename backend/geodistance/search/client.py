# geodistance/search/client.py
import logging
from typing import Any, Dict, List, Optional

from elastic_transport import TransportError
from elasticsearch import ApiError, Elasticsearch
from pydantic import ValidationError

from ..config import Settings
from ..errors import QueryExecutionError
from ..schemas import LookupRequest, SearchResult

logger = logging.getLogger(__name__)


class SearchClient:
    """
    Thin wrapper over the official Elasticsearch client: builds it from the
    settings and turns every API/transport failure into QueryExecutionError.
    """

    def __init__(self, hosts: List[str], user: Optional[str] = None, password: Optional[str] = None,
                 ssl: bool = False, ca_file: Optional[str] = None, timeout: float = 20.0):
        if not hosts:
            raise ValueError("at least one host is required")
        scheme = "https" if ssl else "http"
        self.hosts = [h.rstrip("/") if "://" in h else f"{scheme}://{h.rstrip('/')}" for h in hosts]

        kwargs: Dict[str, Any] = {
            "request_timeout": timeout,
            # a dead node is retried on the next one
            "max_retries": max(len(self.hosts) - 1, 0),
            "retry_on_timeout": True,
        }
        if user:
            kwargs["basic_auth"] = (user, password or "")
        if ssl and ca_file:
            kwargs["ca_certs"] = ca_file
        self.es = Elasticsearch(hosts=self.hosts, **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchClient":
        password = settings.ES_PASSWORD.get_secret_value() if settings.ES_PASSWORD else None
        return cls(
            settings.ES_HOSTS,
            user=settings.ES_USER,
            password=password,
            ssl=settings.ES_SSL,
            ca_file=settings.ES_CA_FILE,
            timeout=settings.ES_REQUEST_TIMEOUT,
        )

    def search(self, req: LookupRequest) -> SearchResult:
        kwargs: Dict[str, Any] = {"index": req.index.strip() or None}
        if req.body is not None:
            kwargs["body"] = req.body
        else:
            kwargs.update(req.params())

        try:
            resp = self.es.search(**kwargs)
        except ApiError as e:
            raise QueryExecutionError(f"search on {kwargs['index'] or '_all'} returned {e.meta.status}: {e.message}") from e
        except TransportError as e:
            raise QueryExecutionError(f"search on {kwargs['index'] or '_all'} failed: {e}") from e

        data = resp.body
        if not isinstance(data, dict):
            raise QueryExecutionError(f"unexpected search response: {str(data)[:200]}")
        try:
            return SearchResult.from_response(data)
        except (ValidationError, AttributeError) as e:
            raise QueryExecutionError(f"malformed search response: {e}") from e

    def close(self):
        self.es.close()
