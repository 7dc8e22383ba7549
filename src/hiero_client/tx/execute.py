"""
Execution harness.

Every request sent to a consensus node (transaction submissions and
receipt queries alike) runs through Executor: pick a healthy node from the
request's node set, send the pre-built payload with a per-attempt gRPC
deadline, classify the answer, and either return, retry on the same node,
rotate to the next node, or fail.
"""

from __future__ import annotations
import asyncio
import functools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, List, Optional, Sequence, Tuple, Union

from ..client.client import Client, get_default_client
from ..network.registry import NodeRegistry
from ..runtime.backoff import ExponentialBackoff
from ..runtime.cancellation import CancellationToken
from ..runtime.errors import (
    ExecutionCancelledError,
    ExecutionTimeoutError,
    HieroError,
    NetworkExhaustedError,
    TransportError,
    ValidationError,
)
from ..runtime.ids import AccountId
from ..runtime.status import ExecutionState, ResponseCode, RETRY_SAME_NODE_STATUSES

logger = logging.getLogger(__name__)

# Per-attempt gRPC deadlines stop growing after this many doublings.
MAX_DEADLINE_DOUBLINGS = 4


class Executable(ABC):
    """
    Base class for anything the Executor can send to a node.

    Subclasses provide the gRPC method, the payload for a given node, and
    the mapping from raw response bytes to an execution state and result.
    Budget settings left unset fall back to the client's.

    A node set chosen by the client (rather than pinned by the caller) may
    grow during execution when every node in it is in backoff.
    """

    # Requests that poll until a final answer are bounded by the deadline only.
    _attempts_bounded: ClassVar[bool] = True

    def __init__(self):
        """Initialize execution settings."""
        self._node_account_ids: List[AccountId] = []
        self._node_account_ids_pinned = False
        self._max_attempts: Optional[int] = None
        self._min_backoff: Optional[float] = None
        self._max_backoff: Optional[float] = None
        self._grpc_deadline: Optional[float] = None
        self._request_timeout: Optional[float] = None

    # Settings

    def set_node_account_ids(self, node_account_ids: Sequence[Union[str, AccountId]]) -> Executable:
        """
        Pin the request to an explicit node set.

        An explicit node set takes precedence over client-side selection.
        """
        ids = [AccountId.of(n) for n in node_account_ids]
        if not ids:
            raise ValidationError("Node account id list must not be empty")
        if len(set(ids)) != len(ids):
            raise ValidationError("Node account ids must be distinct")
        self._node_account_ids = ids
        self._node_account_ids_pinned = True
        return self

    @property
    def node_account_ids(self) -> List[AccountId]:
        return list(self._node_account_ids)

    def _accept_node(self, node_account_id: AccountId) -> bool:
        """Add a node to a client-chosen node set; False if the set is pinned."""
        if self._node_account_ids_pinned:
            return False
        self._node_account_ids.append(node_account_id)
        return True

    def set_max_attempts(self, max_attempts: int) -> Executable:
        if max_attempts < 1:
            raise ValidationError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        return self

    def set_min_backoff(self, seconds: float) -> Executable:
        if seconds < 0:
            raise ValidationError("min_backoff must not be negative")
        self._min_backoff = seconds
        return self

    def set_max_backoff(self, seconds: float) -> Executable:
        if seconds < 0:
            raise ValidationError("max_backoff must not be negative")
        self._max_backoff = seconds
        return self

    def set_grpc_deadline(self, seconds: float) -> Executable:
        if seconds <= 0:
            raise ValidationError("grpc_deadline must be positive")
        self._grpc_deadline = seconds
        return self

    def set_request_timeout(self, seconds: float) -> Executable:
        if seconds <= 0:
            raise ValidationError("request_timeout must be positive")
        self._request_timeout = seconds
        return self

    # Hooks

    @abstractmethod
    def _prepare(self, client: Client) -> None:
        """Make the request ready to send (freeze, sign, pick nodes)."""

    @abstractmethod
    def _method(self) -> str:
        """Full gRPC method path."""

    @abstractmethod
    def _make_request(self, node_account_id: AccountId) -> bytes:
        """Encoded request for one node."""

    @abstractmethod
    def _map_status(self, response: bytes) -> Tuple[ExecutionState, ResponseCode, Any]:
        """Decode a response into (state, status, parsed response)."""

    @abstractmethod
    def _map_response(self, parsed: Any, node_account_id: AccountId) -> Any:
        """Build the caller-facing result from an OK response."""

    @abstractmethod
    def _make_error(self, status: ResponseCode, parsed: Any) -> HieroError:
        """Error for a terminal status."""

    # Execution

    def execute(self, client: Optional[Client] = None, timeout: Optional[float] = None,
                cancel: Optional[CancellationToken] = None) -> Any:
        """
        Execute the request and block until it completes.

        Args:
            client: Client to execute with; the default client when omitted
            timeout: Overall deadline in seconds; the request or client
                setting when omitted
            cancel: Token to cancel the execution from another thread

        Raises:
            PrecheckError: On a terminal status
            ExecutionTimeoutError: If the deadline passes first
            NetworkExhaustedError: If every attempt was used or no node is usable
            ExecutionCancelledError: If cancelled
        """
        return Executor().execute(self, client, timeout, cancel)

    async def execute_async(self, client: Optional[Client] = None, timeout: Optional[float] = None,
                            cancel: Optional[CancellationToken] = None) -> Any:
        """Run execute in the event loop's default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.execute, client, timeout, cancel))

    def execute_callback(self, client: Optional[Client], on_success: Callable[[Any], None],
                         on_error: Callable[[BaseException], None], timeout: Optional[float] = None,
                         cancel: Optional[CancellationToken] = None) -> threading.Thread:
        """
        Execute on a background thread and report through callbacks.

        Returns:
            The started thread
        """
        def run():
            try:
                result = self.execute(client, timeout, cancel)
            except HieroError as e:
                on_error(e)
                return
            on_success(result)

        thread = threading.Thread(target=run, name=f"hiero-{type(self).__name__}", daemon=True)
        thread.start()
        return thread


class Executor:
    """
    The attempt loop shared by every Executable.

    Node health is recorded on the client's registry: transport failures
    and node-account mismatches put a node in backoff, busy answers are
    counted against it, and a success resets it.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock

    def execute(self, executable: Executable, client: Optional[Client] = None,
                timeout: Optional[float] = None, cancel: Optional[CancellationToken] = None) -> Any:
        client = client or get_default_client()
        cancel = cancel or CancellationToken()
        cancel.raise_if_cancelled()

        if timeout is None:
            timeout = executable._request_timeout or client.request_timeout
        deadline = self._clock() + timeout

        executable._prepare(client)
        node_ids = executable.node_account_ids
        if not node_ids:
            raise ValidationError("Request has no node account ids")

        max_attempts = executable._max_attempts
        if max_attempts is None and executable._attempts_bounded:
            max_attempts = client.max_attempts
        min_backoff = executable._min_backoff if executable._min_backoff is not None else client.min_backoff
        max_backoff = executable._max_backoff if executable._max_backoff is not None else client.max_backoff
        grpc_deadline = executable._grpc_deadline or client.grpc_deadline
        backoff = ExponentialBackoff(min_backoff, max_backoff)
        attempt_deadlines = ExponentialBackoff(grpc_deadline, grpc_deadline * 2 ** MAX_DEADLINE_DOUBLINGS)
        budget = max_attempts if max_attempts is not None else "unbounded"
        registry = client.registry
        method = executable._method()

        index = 0
        attempt = 0
        last_status: Optional[ResponseCode] = None
        last_error: Optional[BaseException] = None

        while max_attempts is None or attempt < max_attempts:
            cancel.raise_if_cancelled()
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ExecutionTimeoutError(last_status=last_status, cause=last_error)

            position = self._next_healthy(registry, node_ids, index)
            if position is None:
                position = self._widen(executable, registry, node_ids)
            if position is None:
                self._wait_for_readmit(registry, node_ids, remaining, cancel, last_status, last_error)
                continue
            index = position
            node_id = node_ids[index % len(node_ids)]
            node = registry.get(node_id)

            sub_deadline = min(attempt_deadlines.calculate_delay(attempt + 1), remaining)
            payload = executable._make_request(node_id)
            attempt += 1
            logger.debug(f"Attempt {attempt}/{budget}: {method} to node {node_id} "
                         f"(deadline {sub_deadline:.2f}s)")

            try:
                raw = client.transport.call(node, method, payload, sub_deadline, cancel)
            except TransportError as e:
                registry.record_failure(node_id)
                last_error = e
                logger.warning(f"Node {node_id} unreachable: {e.message}; rotating")
                index += 1
            else:
                state, status, parsed = executable._map_status(raw)
                last_status = status
                if state is ExecutionState.OK:
                    registry.record_success(node_id)
                    return executable._map_response(parsed, node_id)
                if state is ExecutionState.TERMINAL:
                    raise executable._make_error(status, parsed)
                if state is ExecutionState.RETRY_DIFFERENT_NODE:
                    registry.record_failure(node_id)
                    logger.warning(f"Node {node_id} answered {status.name}; refreshing address book and rotating")
                    client.schedule_network_update()
                    index += 1
                else:
                    if status in RETRY_SAME_NODE_STATUSES:
                        registry.record_busy(node_id)
                    logger.warning(f"Node {node_id} answered {status.name}; retrying")

            if max_attempts is not None and attempt >= max_attempts:
                break
            delay = min(backoff.calculate_delay(attempt), sub_deadline, max(deadline - self._clock(), 0.0))
            if cancel.wait(delay):
                raise ExecutionCancelledError()

        if deadline - self._clock() <= 0:
            raise ExecutionTimeoutError(last_status=last_status, cause=last_error)
        raise NetworkExhaustedError(f"Request failed after {attempt} attempts", last_status, last_error)

    @staticmethod
    def _next_healthy(registry: NodeRegistry, node_ids: List[AccountId], index: int) -> Optional[int]:
        """Position of the first healthy node at or after index, or None."""
        for offset in range(len(node_ids)):
            if registry.is_healthy(node_ids[(index + offset) % len(node_ids)]):
                return index + offset
        return None

    @staticmethod
    def _widen(executable: Executable, registry: NodeRegistry, node_ids: List[AccountId]) -> Optional[int]:
        """Add a healthy registry node to a client-chosen node set; its position, or None."""
        for node in registry.healthy_nodes():
            if node.account_id in node_ids:
                continue
            if not executable._accept_node(node.account_id):
                return None
            node_ids.append(node.account_id)
            logger.debug(f"Request nodes all in backoff; adding node {node.account_id}")
            return len(node_ids) - 1
        return None

    def _wait_for_readmit(self, registry: NodeRegistry, node_ids: List[AccountId], remaining: float,
                          cancel: CancellationToken, last_status: Optional[ResponseCode],
                          last_error: Optional[BaseException]) -> None:
        readmit = registry.earliest_readmit(node_ids)
        if readmit is None:
            raise NetworkExhaustedError("None of the request's nodes is known to the client",
                                        last_status, last_error)
        wait = max(readmit - registry.now(), 0.0)
        if wait >= remaining:
            raise NetworkExhaustedError("Every node of the request is in backoff past the deadline",
                                        last_status, last_error)
        logger.debug(f"All request nodes in backoff; waiting {wait:.2f}s")
        if cancel.wait(wait):
            raise ExecutionCancelledError()


__all__ = ["Executable", "Executor", "MAX_DEADLINE_DOUBLINGS"]
