"""
Row-level change feed for live updates

Every model save or delete made through the peewee model API is turned into a
ChangeEvent and delivered to the subscriptions whose table, event type and
column filters match. Bulk queries (Model.update().execute(),
Model.delete().execute()) bypass model signals and are not delivered.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from playhouse.shortcuts import model_to_dict
from playhouse.signals import post_save, post_delete

logger = logging.getLogger(__name__)

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'
ANY = '*'

EVENT_TYPES = (INSERT, UPDATE, DELETE, ANY)


@dataclass
class ChangeEvent:
    """A changed row: table name, event type and the row as a dict of column values"""
    table: str
    event_type: str
    new: Dict[str, Any] = field(default_factory=dict)
    instance: Optional[Any] = None


class Subscription:
    """Handle returned by ChangeFeed.subscribe; call unsubscribe() on teardown"""

    def __init__(self, feed, table: str, event_type: str, filters: Dict[str, Any],
                 callback: Callable[[ChangeEvent], None]):
        self.feed = feed
        self.table = table
        self.event_type = event_type
        self.filters = filters
        self.callback = callback
        self.active = True

    def matches(self, change: ChangeEvent) -> bool:
        if not self.active or change.table != self.table:
            return False
        if self.event_type != ANY and change.event_type != self.event_type:
            return False
        return all(change.new.get(column) == value for column, value in self.filters.items())

    def unsubscribe(self):
        self.feed.remove(self)

    def __repr__(self):
        return f"<Subscription: {self.table} {self.event_type} {self.filters}>"


class ChangeFeed:
    """In-process change feed driven by playhouse.signals"""

    def __init__(self, name: str = 'meetspark'):
        self.name = name
        self._subscriptions = []
        self._lock = threading.Lock()
        self._connected = False

    @property
    def _receiver_names(self):
        return f"{self.name}_change_feed_save", f"{self.name}_change_feed_delete"

    def connect(self):
        """Start listening to model signals (idempotent)"""
        if self._connected:
            return
        save_name, delete_name = self._receiver_names
        post_save.connect(self._on_save, name=save_name)
        post_delete.connect(self._on_delete, name=delete_name)
        self._connected = True

    def disconnect(self):
        if not self._connected:
            return
        save_name, delete_name = self._receiver_names
        post_save.disconnect(name=save_name)
        post_delete.disconnect(name=delete_name)
        self._connected = False

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None],
                  event_type: str = ANY, **filters) -> Subscription:
        """Subscribe to changes of one table, optionally filtered by column values"""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown change event type: {event_type}")
        subscription = Subscription(self, table, event_type, filters, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed {subscription!r}")
        return subscription

    def remove(self, subscription: Subscription):
        subscription.active = False
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug(f"Unsubscribed {subscription!r}")

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, change: ChangeEvent):
        """Deliver a change to every matching subscription

        A failing callback is logged and does not affect the write or the
        other subscribers.
        """
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(change)]
        for subscription in targets:
            try:
                subscription.callback(change)
            except Exception as e:
                logger.error(f"Change feed callback failed for {subscription!r}: {e}", exc_info=True)

    def _on_save(self, sender, instance, created):
        self.publish(ChangeEvent(
            table=sender._meta.table_name,
            event_type=INSERT if created else UPDATE,
            new=model_to_dict(instance, recurse=False),
            instance=instance,
        ))

    def _on_delete(self, sender, instance):
        self.publish(ChangeEvent(
            table=sender._meta.table_name,
            event_type=DELETE,
            new=model_to_dict(instance, recurse=False),
            instance=instance,
        ))


# Shared feed used by the application; connected in create_app()
feed = ChangeFeed()
