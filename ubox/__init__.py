"""Tagged binary messages, JSON and shell conversion, and small data-structure helpers."""

__version__ = "0.1.0"

__all__ = [
    "avl",
    "b64",
    "blob",
    "blobmsg",
    "blobmsg_json",
    "jshn",
    "kvlist",
]