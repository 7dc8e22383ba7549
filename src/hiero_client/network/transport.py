"""
gRPC transport.

Every HAPI method the SDK calls is unary and carries raw protobuf bytes,
so the transport sends pre-encoded payloads without generated stubs.
"""

from __future__ import annotations
import logging
from typing import Optional

import grpc

from ..runtime.cancellation import CancellationToken
from ..runtime.errors import ExecutionCancelledError, TransportError
from .node import Node

logger = logging.getLogger(__name__)

# How often an in-flight call checks its cancellation token.
_CANCEL_POLL_INTERVAL = 0.05


class Transport:
    """
    Sends one request to one node.

    Test doubles implement the same `call` signature.
    """

    def call(self, node: Node, method: str, payload: bytes, timeout: float,
             cancel: Optional[CancellationToken] = None) -> bytes:
        """
        Make a unary call.

        Args:
            node: Target node
            method: Full method path, e.g. `/proto.CryptoService/cryptoTransfer`
            payload: Encoded request message
            timeout: Per-call deadline in seconds
            cancel: Cancellation token checked while the call is in flight

        Returns:
            Encoded response message

        Raises:
            TransportError: On connection failure or deadline expiry
            ExecutionCancelledError: If cancelled while in flight
        """
        raise NotImplementedError


class GrpcTransport(Transport):
    """Transport over each node's shared gRPC channel."""

    def call(self, node: Node, method: str, payload: bytes, timeout: float,
             cancel: Optional[CancellationToken] = None) -> bytes:
        stub = node.channel.unary_unary(method, request_serializer=None, response_deserializer=None)
        future = stub.future(payload, timeout=timeout)
        while True:
            try:
                return future.result(timeout=_CANCEL_POLL_INTERVAL)
            except grpc.FutureTimeoutError:
                if cancel is not None and cancel.cancelled:
                    future.cancel()
                    raise ExecutionCancelledError()
            except grpc.FutureCancelledError as e:
                raise ExecutionCancelledError() from e
            except grpc.RpcError as e:
                code = e.code() if hasattr(e, "code") else None
                logger.debug(f"gRPC {method} to {node.account_id} failed: {code}")
                raise TransportError(
                    f"gRPC call to node {node.account_id} failed",
                    {"node": str(node.account_id), "method": method,
                     "grpc_status": code.name if code is not None else None},
                    cause=e,
                ) from e


__all__ = ["Transport", "GrpcTransport"]
