"""Route modules exposed by the API package."""

from . import admin, auth, employees, metrics, ping, statistics, tickets

__all__ = ["admin", "auth", "employees", "metrics", "ping", "statistics", "tickets"]
