"""
Flow service client for managing peers and mirrors.

This module provides the PeerDBClient class, which calls the PeerDB flow
service through its HTTP/JSON gateway. Each method sends one request
message from mirror_cli.types and parses the matching response.

PeerDBClient receives an injected httpx.AsyncClient with base_url set to the
flow service. Use connect() to build one from Settings.

Failures are translated into mirror_cli.errors types so callers never see
transport-specific exceptions:
- HTTP 4xx/5xx and connection problems -> RemoteError
- Timeouts -> RemoteTimeoutError
- Unparseable responses -> RemoteError
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from mirror_cli.errors import RemoteError, RemoteTimeoutError
from mirror_cli.settings import Settings
from mirror_cli.types import (
    CreateCDCFlowRequest,
    CreateCDCFlowResponse,
    CreatePeerRequest,
    CreatePeerResponse,
    DropPeerRequest,
    FlowConfigUpdate,
    FlowStateChangeRequest,
    FlowStatus,
    ListMirrorNamesResponse,
    ListMirrorsResponse,
    ListPeersResponse,
    MirrorStatusRequest,
    MirrorStatusResponse,
    Peer,
    ValidatePeerRequest,
    ValidatePeerResponse,
    WireModel,
)

logger = logging.getLogger(__name__)

# Per-call budget for single-entity operations, in seconds
DEFAULT_TIMEOUT_SECONDS = 30.0

ResponseT = TypeVar("ResponseT", bound=WireModel)


def _error_reason(response: httpx.Response) -> str:
    """Extract the gateway's error message, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text or response.reason_phrase


@dataclass
class PeerDBClient:
    """
    Flow service client with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to the
            flow service gateway.

    Example:
        async with httpx.AsyncClient(base_url="http://peerdb:8112") as http:
            client = PeerDBClient(http=http)
            peers = await client.list_peers()
            for peer in peers.items:
                print(f"{peer.name}: {peer.type}")
    """

    http: httpx.AsyncClient

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        body: WireModel | None = None,
    ) -> dict[str, Any]:
        logger.debug(f"{method} {path} ({operation})")
        try:
            response = await self.http.request(
                method, path, json=body.to_payload() if body is not None else None
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            timeout = self.http.timeout.read
            raise RemoteTimeoutError(operation, timeout) from e
        except httpx.HTTPStatusError as e:
            raise RemoteError(
                operation, _error_reason(e.response), e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise RemoteError(operation, str(e) or type(e).__name__) from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(operation, "response is not JSON") from e
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _parse(operation: str, model: type[ResponseT], data: dict[str, Any]) -> ResponseT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise RemoteError(operation, f"malformed response: {e}") from e

    # -------------------------------------------------------------------------
    # Peers
    # -------------------------------------------------------------------------

    async def create_peer(self, peer: Peer, allow_update: bool = False) -> CreatePeerResponse:
        """
        Create a peer, or update it in place when allow_update is set.

        Calls POST /v1/peers/create.

        Returns:
            CreatePeerResponse; check .failed for a service-side rejection.

        Raises:
            RemoteError: On HTTP or transport errors.
        """
        op = f"create peer '{peer.name}'"
        data = await self._call(
            op,
            "POST",
            "/v1/peers/create",
            CreatePeerRequest(peer=peer, allow_update=allow_update),
        )
        return self._parse(op, CreatePeerResponse, data)

    async def validate_peer(self, peer: Peer) -> ValidatePeerResponse:
        """Ask the service to check connectivity for a peer definition."""
        op = f"validate peer '{peer.name}'"
        data = await self._call(
            op, "POST", "/v1/peers/validate", ValidatePeerRequest(peer=peer)
        )
        return self._parse(op, ValidatePeerResponse, data)

    async def drop_peer(self, peer_name: str) -> None:
        await self._call(
            f"drop peer '{peer_name}'",
            "POST",
            "/v1/peers/drop",
            DropPeerRequest(peer_name=peer_name),
        )

    async def list_peers(self) -> ListPeersResponse:
        data = await self._call("list peers", "GET", "/v1/peers/list")
        return self._parse("list peers", ListPeersResponse, data)

    # -------------------------------------------------------------------------
    # Mirrors
    # -------------------------------------------------------------------------

    async def create_cdc_mirror(self, request: CreateCDCFlowRequest) -> CreateCDCFlowResponse:
        """
        Create a CDC mirror.

        Calls POST /v1/flows/cdc/create.

        Returns:
            CreateCDCFlowResponse with the workflow ID of the new mirror.
        """
        op = f"create mirror '{request.connection_configs.flow_job_name}'"
        data = await self._call(op, "POST", "/v1/flows/cdc/create", request)
        return self._parse(op, CreateCDCFlowResponse, data)

    async def list_mirrors(self) -> ListMirrorsResponse:
        data = await self._call("list mirrors", "GET", "/v1/mirrors/list")
        return self._parse("list mirrors", ListMirrorsResponse, data)

    async def list_mirror_names(self) -> ListMirrorNamesResponse:
        data = await self._call("list mirror names", "GET", "/v1/mirrors/names")
        return self._parse("list mirror names", ListMirrorNamesResponse, data)

    async def get_mirror_status(self, mirror_name: str) -> MirrorStatusResponse:
        """
        Get detailed status of a mirror, including CDC batch information.

        Calls POST /v1/mirrors/status.
        """
        op = f"get status of mirror '{mirror_name}'"
        data = await self._call(
            op,
            "POST",
            "/v1/mirrors/status",
            MirrorStatusRequest(
                flow_job_name=mirror_name,
                include_flow_info=True,
                exclude_batches=False,
            ),
        )
        return self._parse(op, MirrorStatusResponse, data)

    async def _change_state(self, operation: str, request: FlowStateChangeRequest) -> None:
        await self._call(operation, "POST", "/v1/mirrors/state_change", request)

    async def pause_mirror(self, mirror_name: str) -> None:
        await self._change_state(
            f"pause mirror '{mirror_name}'",
            FlowStateChangeRequest(
                flow_job_name=mirror_name,
                requested_flow_state=FlowStatus.PAUSED,
            ),
        )

    async def resume_mirror(self, mirror_name: str) -> None:
        await self._change_state(
            f"resume mirror '{mirror_name}'",
            FlowStateChangeRequest(
                flow_job_name=mirror_name,
                requested_flow_state=FlowStatus.RUNNING,
            ),
        )

    async def drop_mirror(self, mirror_name: str, skip_destination_drop: bool = False) -> None:
        """
        Terminate a mirror and drop its statistics.

        Args:
            mirror_name: Mirror to drop.
            skip_destination_drop: Keep the replicated tables in the
                destination peer.
        """
        await self._change_state(
            f"drop mirror '{mirror_name}'",
            FlowStateChangeRequest(
                flow_job_name=mirror_name,
                requested_flow_state=FlowStatus.TERMINATED,
                drop_mirror_stats=True,
                skip_destination_drop=skip_destination_drop,
            ),
        )

    async def update_mirror(self, mirror_name: str, update: FlowConfigUpdate) -> None:
        """
        Apply a configuration update to a running mirror.

        The mirror is paused, the update is sent with the mirror still
        paused, and the mirror is resumed. If a step fails the mirror is
        left in whatever state that step reached.

        Raises:
            RemoteError: From the first failing step.
        """
        await self.pause_mirror(mirror_name)
        await self._change_state(
            f"update mirror '{mirror_name}'",
            FlowStateChangeRequest(
                flow_job_name=mirror_name,
                requested_flow_state=FlowStatus.PAUSED,
                flow_config_update=update,
            ),
        )
        await self.resume_mirror(mirror_name)


@asynccontextmanager
async def connect(
    settings: Settings,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[PeerDBClient]:
    """
    Open a PeerDBClient for the service described by settings.

    Args:
        settings: Server address, TLS flag and credentials.
        timeout: Per-request timeout in seconds.
        transport: Optional transport override (used by tests).

    Yields:
        A PeerDBClient whose HTTP client is closed on exit.
    """
    auth = httpx.BasicAuth(settings.username, settings.password) if settings.username else None
    async with httpx.AsyncClient(
        base_url=settings.base_url,
        auth=auth,
        timeout=timeout,
        transport=transport,
    ) as http:
        logger.debug(f"Connected to flow service at {settings.base_url}")
        yield PeerDBClient(http=http)
