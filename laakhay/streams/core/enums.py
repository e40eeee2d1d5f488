"""Core enumerations shared by sinks and the backpressure bridge.

Key Types:
    - SinkEvent: Readiness events a push sink reports to its listeners
    - WaiterState: States of the bridge's single waiter slot
"""

from enum import Enum


class SinkEvent(str, Enum):
    """Readiness events emitted by a bounded push sink.

    Events may be emitted from the sink's own execution context, which is
    not necessarily the thread running the producing task.
    """

    HAS_SPACE_AVAILABLE = "has_space_available"
    ERROR_OCCURRED = "error_occurred"


class WaiterState(str, Enum):
    """States of the single-slot handoff between a producer and sink events.

    Transitions:
        IDLE -> WAITING: producer found no capacity and suspended
        IDLE -> CAPACITY_AVAILABLE: capacity event arrived with nobody waiting
        CAPACITY_AVAILABLE -> IDLE: producer consumed the remembered event
        WAITING -> IDLE: waiter resumed (capacity, error or task cancellation)
        * -> CLOSED: teardown, any waiting occupant is resumed
    """

    IDLE = "idle"
    CAPACITY_AVAILABLE = "capacity_available"
    WAITING = "waiting"
    CLOSED = "closed"
