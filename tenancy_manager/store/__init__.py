"""
Resource Store

Store interface, adapters and the controller-facing client.
"""

from .base import EventType, ResourceStore, WatchEvent, Watcher
from .client import Client, OperationResult
from .memory import MemoryStore

__all__ = [
    'EventType',
    'ResourceStore',
    'WatchEvent',
    'Watcher',
    'Client',
    'OperationResult',
    'MemoryStore',
]
