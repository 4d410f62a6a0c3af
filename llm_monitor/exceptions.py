"""
Exceptions raised by llm_monitor

Telemetry-path failures (a store rejecting a write) are never raised to
the instrumented workload; only setup mistakes surface as exceptions.
"""


class MonitorError(Exception):
    """Base class for llm_monitor errors"""


class StoreConfigurationError(MonitorError):
    """
    A store is wired to a backend that cannot serve it

    Raised at first use, e.g. when a SQLite store points at a table that
    does not exist and table creation is disabled.
    """

    def __init__(self, message: str, store: str = None):
        super().__init__(message)
        self.message = message
        self.store = store


__all__ = [
    "MonitorError",
    "StoreConfigurationError",
]
