"""
Event Bus - pub/sub for live run observation.

UI projections, progress bars and loggers subscribe here instead of
polling the ledger. Publishing never affects the run: handler failures
are logged and dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events that can be published."""

    # Run lifecycle
    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"

    # Invocation lifecycle
    EXECUTION_STARTED = "execution_started"
    EXECUTION_COMPLETED = "execution_completed"
    EXECUTION_FAILED = "execution_failed"

    # UI projections
    NODE_STATUS_CHANGED = "node_status_changed"
    PROGRESS = "progress"


@dataclass
class PipelineEvent:
    """An event emitted while a run is in flight."""

    type: EventType
    trace_id: str
    node_id: str | None = None
    execution_id: str | None = None
    replica_index: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "trace_id": self.trace_id,
            "node_id": self.node_id,
            "execution_id": self.execution_id,
            "replica_index": self.replica_index,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


# Type for event handlers
EventHandler = Callable[[PipelineEvent], Awaitable[None]]


@dataclass
class Subscription:
    """A subscription to events."""

    id: str
    event_types: set[EventType]
    handler: EventHandler
    filter_trace: str | None = None  # Only receive events from this run
    filter_node: str | None = None  # Only receive events from this node


class EventBus:
    """
    Pub/sub event bus for run observation.

    Example:
        bus = EventBus()

        async def on_progress(event: PipelineEvent):
            print(f"{event.data['percent']}% - {event.data['phase']}")

        bus.subscribe(event_types=[EventType.PROGRESS], handler=on_progress)
        executor = PipelineExecutor(registry, client, event_bus=bus)
    """

    def __init__(
        self,
        max_history: int = 1000,
        max_concurrent_handlers: int = 10,
    ):
        """
        Initialize event bus.

        Args:
            max_history: Maximum events to keep in history
            max_concurrent_handlers: Maximum concurrent handler executions
        """
        self._subscriptions: dict[str, Subscription] = {}
        self._event_history: list[PipelineEvent] = []
        self._max_history = max_history
        self._semaphore = asyncio.Semaphore(max_concurrent_handlers)
        self._subscription_counter = 0
        self._lock = asyncio.Lock()

    def subscribe(
        self,
        event_types: list[EventType],
        handler: EventHandler,
        filter_trace: str | None = None,
        filter_node: str | None = None,
    ) -> str:
        """
        Subscribe to events.

        Returns:
            Subscription ID (use to unsubscribe)
        """
        self._subscription_counter += 1
        sub_id = f"sub_{self._subscription_counter}"

        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            event_types=set(event_types),
            handler=handler,
            filter_trace=filter_trace,
            filter_node=filter_node,
        )
        logger.debug(f"Subscription {sub_id} registered for {event_types}")
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription. Returns True if it existed."""
        if subscription_id in self._subscriptions:
            del self._subscriptions[subscription_id]
            logger.debug(f"Subscription {subscription_id} removed")
            return True
        return False

    async def publish(self, event: PipelineEvent) -> None:
        """Publish an event to all matching subscribers."""
        async with self._lock:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history :]

        matching_handlers = [
            subscription.handler
            for subscription in self._subscriptions.values()
            if self._matches(subscription, event)
        ]
        if matching_handlers:
            await self._execute_handlers(event, matching_handlers)

    def _matches(self, subscription: Subscription, event: PipelineEvent) -> bool:
        """Check if a subscription matches an event."""
        if event.type not in subscription.event_types:
            return False
        if subscription.filter_trace and subscription.filter_trace != event.trace_id:
            return False
        if subscription.filter_node and subscription.filter_node != event.node_id:
            return False
        return True

    async def _execute_handlers(
        self,
        event: PipelineEvent,
        handlers: list[EventHandler],
    ) -> None:
        """Execute handlers concurrently with rate limiting."""

        async def run_handler(handler: EventHandler) -> None:
            async with self._semaphore:
                try:
                    await handler(event)
                except Exception as e:
                    logger.error(f"Handler error for {event.type}: {e}")

        await asyncio.gather(*[run_handler(h) for h in handlers], return_exceptions=True)

    # === CONVENIENCE PUBLISHERS ===

    async def emit_run_started(
        self, trace_id: str, pipeline_id: str, run_count: int, mode: str
    ) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.RUN_STARTED,
                trace_id=trace_id,
                data={"pipeline_id": pipeline_id, "run_count": run_count, "mode": mode},
            )
        )

    async def emit_run_completed(self, trace_id: str, status: str, stats: dict) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.RUN_COMPLETED,
                trace_id=trace_id,
                data={"status": status, "stats": stats},
            )
        )

    async def emit_run_failed(self, trace_id: str, error: str) -> None:
        await self.publish(
            PipelineEvent(type=EventType.RUN_FAILED, trace_id=trace_id, data={"error": error})
        )

    async def emit_execution_started(
        self, trace_id: str, node_id: str, execution_id: str, replica_index: int
    ) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.EXECUTION_STARTED,
                trace_id=trace_id,
                node_id=node_id,
                execution_id=execution_id,
                replica_index=replica_index,
            )
        )

    async def emit_execution_completed(
        self,
        trace_id: str,
        node_id: str,
        execution_id: str,
        replica_index: int,
        execution_time_ms: int,
    ) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.EXECUTION_COMPLETED,
                trace_id=trace_id,
                node_id=node_id,
                execution_id=execution_id,
                replica_index=replica_index,
                data={"execution_time_ms": execution_time_ms},
            )
        )

    async def emit_execution_failed(
        self,
        trace_id: str,
        node_id: str,
        execution_id: str,
        replica_index: int,
        error: str,
    ) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.EXECUTION_FAILED,
                trace_id=trace_id,
                node_id=node_id,
                execution_id=execution_id,
                replica_index=replica_index,
                data={"error": error},
            )
        )

    async def emit_node_status_changed(self, trace_id: str, node_id: str, status: str) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.NODE_STATUS_CHANGED,
                trace_id=trace_id,
                node_id=node_id,
                data={"status": status},
            )
        )

    async def emit_progress(
        self, trace_id: str, phase: str, completed: int, total: int, percent: int
    ) -> None:
        await self.publish(
            PipelineEvent(
                type=EventType.PROGRESS,
                trace_id=trace_id,
                data={"phase": phase, "completed": completed, "total": total, "percent": percent},
            )
        )

    # === QUERY OPERATIONS ===

    def get_history(
        self,
        event_type: EventType | None = None,
        trace_id: str | None = None,
        node_id: str | None = None,
        limit: int = 100,
    ) -> list[PipelineEvent]:
        """
        Get event history with optional filtering.

        Returns:
            List of matching events (most recent first)
        """
        events = self._event_history[::-1]

        if event_type:
            events = [e for e in events if e.type == event_type]
        if trace_id:
            events = [e for e in events if e.trace_id == trace_id]
        if node_id:
            events = [e for e in events if e.node_id == node_id]

        return events[:limit]

    def get_stats(self) -> dict:
        """Get event bus statistics."""
        type_counts: dict[str, int] = {}
        for event in self._event_history:
            type_counts[event.type.value] = type_counts.get(event.type.value, 0) + 1

        return {
            "total_events": len(self._event_history),
            "subscriptions": len(self._subscriptions),
            "events_by_type": type_counts,
        }

    # === WAITING OPERATIONS ===

    async def wait_for(
        self,
        event_type: EventType,
        trace_id: str | None = None,
        node_id: str | None = None,
        timeout: float | None = None,
    ) -> PipelineEvent | None:
        """
        Wait for a specific event to occur.

        Returns:
            The event if received, None on timeout
        """
        result: PipelineEvent | None = None
        event_received = asyncio.Event()

        async def handler(event: PipelineEvent) -> None:
            nonlocal result
            result = event
            event_received.set()

        sub_id = self.subscribe(
            event_types=[event_type],
            handler=handler,
            filter_trace=trace_id,
            filter_node=node_id,
        )

        try:
            if timeout:
                try:
                    await asyncio.wait_for(event_received.wait(), timeout=timeout)
                except TimeoutError:
                    return None
            else:
                await event_received.wait()

            return result
        finally:
            self.unsubscribe(sub_id)
