# geodistance/search/pool.py
import logging
import threading
from typing import Callable, Dict, Hashable, Optional

from .client import SearchClient

logger = logging.getLogger(__name__)


class ClientPool:
    """
    One SearchClient per worker (thread ident by default), built lazily on
    first use and kept until close(). Construction for a given key happens
    exactly once, even when several callers race on it.
    """

    def __init__(self, factory: Callable[[], SearchClient]):
        self._factory = factory
        self._clients: Dict[Hashable, SearchClient] = {}
        self._lock = threading.Lock()

    def acquire(self, worker_id: Optional[Hashable] = None) -> SearchClient:
        key = threading.get_ident() if worker_id is None else worker_id
        client = self._clients.get(key)
        if client is not None:
            return client
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = self._factory()
                self._clients[key] = client
                logger.info("search client created for worker %s (pool size %d)", key, len(self._clients))
        return client

    def __len__(self):
        return len(self._clients)

    def close(self):
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for c in clients:
            try:
                c.close()
            except Exception as e:
                logger.warning("error closing search client: %s", e)
