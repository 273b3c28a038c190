"""
Channel to store directory.

Maps each store's Slack channel to the store it belongs to.  The directory
holds an immutable snapshot that :meth:`ChannelDirectory.refresh` replaces
wholesale; readers never see a half-loaded mapping.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreInfo:
    store_id: int
    name: str


@dataclass(frozen=True)
class ChannelSnapshot:
    version: int
    stores: Mapping[str, StoreInfo] = field(default_factory=dict)


def load_store_channels(session_factory: Callable[[], Session]) -> Iterable[Tuple[str, StoreInfo]]:
    stmt = select(Store.id, Store.name, Store.channel_id).where(Store.channel_id.is_not(None))
    with session_factory() as session:
        rows = session.execute(stmt).all()
    return [(row.channel_id, StoreInfo(store_id=row.id, name=row.name)) for row in rows]


class ChannelDirectory:
    def __init__(self, loader: Optional[Callable[[], Iterable[Tuple[str, StoreInfo]]]] = None) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._snapshot = ChannelSnapshot(version=0, stores=MappingProxyType({}))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, StoreInfo]) -> "ChannelDirectory":
        directory = cls(loader=lambda: list(mapping.items()))
        directory.refresh()
        return directory

    @classmethod
    def from_database(cls, session_factory: Callable[[], Session]) -> "ChannelDirectory":
        return cls(loader=lambda: load_store_channels(session_factory))

    @property
    def snapshot(self) -> ChannelSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def lookup(self, channel_id: Optional[str]) -> Optional[StoreInfo]:
        if not channel_id:
            return None
        return self._snapshot.stores.get(channel_id)

    def refresh(self) -> bool:
        """Reload the mapping.  On failure the previous snapshot stays in place."""
        if self._loader is None:
            raise RuntimeError("ChannelDirectory has no loader configured")
        with self._lock:
            try:
                entries = dict(self._loader())
            except SQLAlchemyError:
                logger.exception("Failed to load store-channel map; keeping version %s", self._snapshot.version)
                return False
            self._snapshot = ChannelSnapshot(
                version=self._snapshot.version + 1,
                stores=MappingProxyType(entries),
            )
        logger.info("Store-channel map loaded: %d stores (version %d)", len(entries), self._snapshot.version)
        return True


__all__ = ["ChannelDirectory", "ChannelSnapshot", "StoreInfo", "load_store_channels"]
