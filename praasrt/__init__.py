"""Message frames, buffers, function context and control-plane client for PraaS applications."""

__version__ = "0.1.0"

__all__ = [
    "buffers",
    "context",
    "messages",
    "sdk",
    "state",
]