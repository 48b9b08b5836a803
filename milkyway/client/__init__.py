# -*- coding: utf-8 -*-
"""Client side: Local Cache, remote Record Store client and the Sync Coordinator."""

from .local_cache import LocalCache
from .remote import RemoteRecordStore
from .sync import SyncCoordinator

__all__ = ["LocalCache", "RemoteRecordStore", "SyncCoordinator"]
