"""
Relay controller, centralizes the relay's services in
a structured and coherent object.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from chat_relay.core.presence import PresenceRegistry
from chat_relay.services.gateway import IMessageStore, SQLiteMessageStore
from chat_relay.services.routing import RoutingEngine
from chat_relay.services.storage import StorageService
from chat_relay.services.websocket import ConnectionManager

logger = logging.getLogger(__name__)


class IRelayService(ABC):
    """
    Abstract Interface for the relay's management service.
    Defines the contract for wiring and tearing down the relay.
    """

    @property
    @abstractmethod
    def store(self) -> Optional[IMessageStore]:
        """Returns the active message store (if set)"""
        pass

    @property
    @abstractmethod
    def engine(self) -> Optional[RoutingEngine]:
        """Returns the active routing engine (if set)"""
        pass

    @abstractmethod
    def is_initialized(self) -> bool:
        """Checks if the relay is active and ready"""
        pass

    @abstractmethod
    async def initialize(self, db_path: str) -> None:
        """
        Start the relay's services.
        Configures the DB, the presence registry and the routing engine.
        """
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Gracefully shuts the relay down, closing open connections.
        """
        pass


class LocalRelayService(IRelayService):
    """
    Single process relay: all presence and connection state
    lives in this object.
    """

    def __init__(self) -> None:
        self._store: Optional[IMessageStore] = None
        self._engine: Optional[RoutingEngine] = None

    @property
    def store(self) -> Optional[IMessageStore]:
        return self._store

    @property
    def engine(self) -> Optional[RoutingEngine]:
        return self._engine

    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self, db_path: str) -> None:
        if self.is_initialized():
            return

        logger.info("Initializing relay with database: %s", db_path)

        self._store = SQLiteMessageStore(StorageService(db_path))
        self._engine = RoutingEngine(
            registry=PresenceRegistry(),
            store=self._store,
            connections=ConnectionManager(),
        )

    async def shutdown(self) -> None:
        logger.info("Shutting down relay...")

        if self._engine:
            await self._engine.connections.close_all()

        self._engine = None
        self._store = None
        logger.info("Relay shutdown complete.")


relay_service: IRelayService = LocalRelayService()
