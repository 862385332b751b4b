"""
MirrorService protocol definition.

The MirrorService protocol is the call contract the CLI needs from the
flow service. PeerDBClient implements it over HTTP; tests substitute
mocks. Keeping the contract separate lets the apply pipeline and the drop
operations be exercised without a running service.
"""

from typing import Protocol, runtime_checkable

from mirror_cli.types import (
    CreateCDCFlowRequest,
    CreateCDCFlowResponse,
    CreatePeerResponse,
    FlowConfigUpdate,
    ListMirrorNamesResponse,
    ListMirrorsResponse,
    ListPeersResponse,
    MirrorStatusResponse,
    Peer,
    ValidatePeerResponse,
)


@runtime_checkable
class MirrorService(Protocol):
    """Remote operations on peers and mirrors."""

    async def create_peer(self, peer: Peer, allow_update: bool = False) -> CreatePeerResponse:
        ...

    async def validate_peer(self, peer: Peer) -> ValidatePeerResponse:
        ...

    async def drop_peer(self, peer_name: str) -> None:
        ...

    async def list_peers(self) -> ListPeersResponse:
        ...

    async def create_cdc_mirror(self, request: CreateCDCFlowRequest) -> CreateCDCFlowResponse:
        ...

    async def list_mirrors(self) -> ListMirrorsResponse:
        ...

    async def list_mirror_names(self) -> ListMirrorNamesResponse:
        ...

    async def get_mirror_status(self, mirror_name: str) -> MirrorStatusResponse:
        ...

    async def pause_mirror(self, mirror_name: str) -> None:
        ...

    async def resume_mirror(self, mirror_name: str) -> None:
        ...

    async def drop_mirror(self, mirror_name: str, skip_destination_drop: bool = False) -> None:
        ...

    async def update_mirror(self, mirror_name: str, update: FlowConfigUpdate) -> None:
        ...
