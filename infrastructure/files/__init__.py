"""File-backed exchange transports."""

from infrastructure.files.jsonl_transport import JsonlFileTransport

__all__ = ["JsonlFileTransport"]
