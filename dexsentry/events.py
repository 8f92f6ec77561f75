"""
Decision event dispatch

The core emits discrete events (signals, rejections, exits, trailing updates)
to whatever transport the host wires in (websocket broadcaster, notifier).

Delivery contract: emit() never blocks and never raises. Handlers run as
separate tasks on the running loop; a failing or slow handler is logged and
does not affect the decision that produced the event. There is no delivery
guarantee: events emitted with no running loop, or whose handler fails, are
dropped.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

SIGNAL_GENERATED = "signal.generated"
TRADE_REJECTED = "trade.rejected"
POSITION_EMERGENCY_EXIT = "position.emergencyExit"
POSITION_TRAILING_UPDATE = "position.trailingUpdate"
PRICE_ALERT_TRIGGERED = "priceAlert.triggered"

EventHandler = Callable[[Dict[str, Any]], Any]


class EventDispatcher:
    """Fans decision events out to subscribed handlers without awaiting them"""

    def __init__(self):
        self._handlers: List[EventHandler] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, handler: EventHandler) -> None:
        """Register a handler; receives the full message dict"""
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Schedule delivery of an event to every handler and return immediately"""
        if not self._handlers:
            return

        message = {"type": event_type, **payload, "timestamp": time.time()}

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, dropping event {event_type}")
            return

        for handler in list(self._handlers):
            task = loop.create_task(self._deliver(handler, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, handler: EventHandler, message: Dict[str, Any]) -> None:
        try:
            result = handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Event handler failed for {message.get('type')}: {e}")

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
