"""RESP3 requests, incremental parsing, response adapters and a small ping client for Redis."""

__version__ = "0.1.0"
__all__ = ["adapters", "client", "request", "resp3"]