"""
Subscription table: numeric message ids bound to registered formats.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from flightlog.core.types.registry import TypeRegistry
from flightlog.errors import UnknownFormatError, UnknownSubscriptionError
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Subscription:
    """
    Binding of a message id to a format instance.
    
    Attributes:
        msg_id: Numeric id used by data frames
        format_name: Registered format name
        multi_id: Instance index distinguishing several publishers of one format
    """
    
    msg_id: int
    format_name: str
    multi_id: int = 0


class SubscriptionTable:
    """
    Active subscriptions, at most one per message id.
    
    Subscribing an id that is already bound replaces the old binding
    (last write wins).
    """
    
    def __init__(self, registry: TypeRegistry):
        """
        Initialize an empty table.
        
        Args:
            registry: Registry that subscribed formats must exist in
        """
        self._registry = registry
        self._subscriptions: Dict[int, Subscription] = {}
    
    def subscribe(self, msg_id: int, format_name: str, multi_id: int = 0) -> Subscription:
        """
        Bind a message id to a registered format.
        
        Returns:
            The new Subscription
        
        Raises:
            UnknownFormatError: If format_name is not registered
        """
        if format_name not in self._registry:
            raise UnknownFormatError(format_name)
        
        subscription = Subscription(msg_id=msg_id, format_name=format_name, multi_id=multi_id)
        previous = self._subscriptions.get(msg_id)
        self._subscriptions[msg_id] = subscription
        
        if previous is not None and previous != subscription:
            logger.info(
                "Replaced subscription",
                msg_id=msg_id,
                previous_format=previous.format_name,
                previous_multi_id=previous.multi_id,
                format_name=format_name,
                multi_id=multi_id,
            )
        
        return subscription
    
    def unsubscribe(self, msg_id: int) -> Optional[Subscription]:
        """Remove a binding. Returns the removed Subscription, or None if absent."""
        return self._subscriptions.pop(msg_id, None)
    
    def lookup(self, msg_id: int) -> Subscription:
        """
        Find the active binding for a message id.
        
        Raises:
            UnknownSubscriptionError: If the id is not bound
        """
        subscription = self._subscriptions.get(msg_id)
        if subscription is None:
            raise UnknownSubscriptionError(msg_id)
        return subscription
    
    def __contains__(self, msg_id: object) -> bool:
        return msg_id in self._subscriptions
    
    def __len__(self) -> int:
        return len(self._subscriptions)
    
    @property
    def subscriptions(self) -> Mapping[int, Subscription]:
        """Read-only view of the active bindings."""
        return MappingProxyType(self._subscriptions)
