"""Process-wide cache of open store handles.

Handles are keyed by store location.  A connector that fails is never
cached, so a transient outage is retried on the next call.  With
``max_size`` set, the least recently used handle is closed and evicted.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable

import structlog

from codship.domain.exceptions import StoreUnavailable
from codship.domain.repository.store_handle import StoreHandle

logger = structlog.get_logger(__name__)

Connector = Callable[[str], StoreHandle]


class ConnectionPool:

    def __init__(self, connector: Connector, max_size: int | None = None) -> None:
        if max_size is not None and max_size <= 0:
            max_size = None
        self._connector = connector
        self._max_size = max_size
        self._handles: OrderedDict[str, StoreHandle] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, uri: object) -> bool:
        return uri in self._handles

    def open(self, uri: str) -> StoreHandle:
        with self._lock:
            handle = self._handles.get(uri)
            if handle is not None:
                self._handles.move_to_end(uri)
                return handle

        # Connect outside the lock so a slow store does not block others.
        try:
            handle = self._connector(uri)
        except StoreUnavailable:
            logger.warning("Store connection failed", location=uri)
            raise
        except OSError as exc:
            logger.warning("Store connection failed", location=uri, error=str(exc))
            raise StoreUnavailable(uri, str(exc)) from exc

        with self._lock:
            existing = self._handles.get(uri)
            if existing is not None:
                handle.close()
                self._handles.move_to_end(uri)
                return existing
            self._handles[uri] = handle
            logger.info("Store connection opened", location=uri, pooled=len(self._handles))
            self._evict()
            return handle

    def close_all(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.close()
        logger.info("Store connections closed", count=len(handles))

    def _evict(self) -> None:
        if self._max_size is None:
            return
        while len(self._handles) > self._max_size:
            uri, handle = self._handles.popitem(last=False)
            handle.close()
            logger.info("Store connection evicted", location=uri)
