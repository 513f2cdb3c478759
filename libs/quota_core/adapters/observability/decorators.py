import time
from functools import wraps

from quota_core.adapters.observability.metrics import HTTP_LATENCY, QUOTA_SYNC_DURATION


def track_http(view_name):
    def decorator(fn):
        @wraps(fn)
        def wrapper(self, request, *args, **kwargs):
            with HTTP_LATENCY.labels(view=view_name).time():
                return fn(self, request, *args, **kwargs)
        return wrapper
    return decorator


def timed_sync(fn):
    """Times a `handle(cmd)` call under the command's sync_type label."""
    @wraps(fn)
    def wrapper(self, cmd, *args, **kwargs):
        start = time.perf_counter()
        try:
            return fn(self, cmd, *args, **kwargs)
        finally:
            QUOTA_SYNC_DURATION.labels(sync_type=getattr(cmd, "sync_type", "manual")).observe(
                time.perf_counter() - start
            )
    return wrapper
