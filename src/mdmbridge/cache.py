import threading
from typing import Any, Callable

from mdmbridge.models import MetricIdentity

HandleFactory = Callable[[str, MetricIdentity], Any]

_MISSING = object()


class MetricKeyCache:
    """
    MetricKeyCache: Is a thread-safe map from a MetricIdentity to
    the backend handle created for it.

    Handles are created lazily through the handle factory and kept
    for the lifetime of the cache, which is meant to be the lifetime
    of the process. There is no eviction: identities are the distinct
    (object, counter) pairs seen, a small bounded set, and dropping
    one would allow a second handle to be created for it.
    """

    def __init__(self, handle_factory: "HandleFactory") -> "None":
        self._factory = handle_factory
        self._lock: "threading.Lock" = threading.Lock()
        self._handles: "dict[str, Any]" = {}
        self._created: "int" = 0

    def resolve(self, account: "str", identity: "MetricIdentity") -> "Any":
        """
        returns the handle for the identity, creating it on first use.
        At most one handle is ever created per identity, even when
        called concurrently from several threads.
        """
        key = identity.key

        # fast path: check cache without lock
        handle = self._handles.get(key, _MISSING)
        if handle is not _MISSING:
            return handle

        with self._lock:
            # re-check after acquiring lock (another thread may have created it)
            handle = self._handles.get(key, _MISSING)
            if handle is not _MISSING:
                return handle

            handle = self._factory(account, identity)
            self._handles[key] = handle
            self._created += 1
            return handle

    @property
    def created(self) -> "int":
        """
        number of handles constructed so far.
        """
        return self._created

    def __len__(self) -> "int":
        return len(self._handles)

    def __contains__(self, identity: "object") -> "bool":
        return isinstance(identity, MetricIdentity) and identity.key in self._handles
