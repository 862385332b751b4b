"""
Request and response types for the PeerDB flow service HTTP/JSON gateway.

The flow service speaks gRPC; its gateway accepts the same messages as JSON.
These Pydantic models mirror the protobuf messages the CLI needs:
- Peer messages: Peer, PostgresConfig, SnowflakeConfig, BigqueryConfig
- Mirror messages: FlowConnectionConfigs, TableMapping, FlowConfigUpdate
- Responses for create/list/status calls

Notes:
- Requests are serialized with protobuf field names (snake_case) and
  exclude_none, so fields the user did not supply are omitted rather than
  sent as explicit zero values.
- Responses may use either protobuf names or lowerCamelCase JSON names
  depending on gateway settings; both are accepted.
- int64 values arrive as JSON strings and are coerced by Pydantic.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for gateway messages: accepts snake_case and camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    def to_payload(self) -> dict:
        """Serialize using protobuf field names, omitting unset fields."""
        return self.model_dump(mode="json", exclude_none=True, by_alias=False)


class DBType(str, Enum):
    """Peer database kinds known to the flow service (subset)."""

    BIGQUERY = "BIGQUERY"
    SNOWFLAKE = "SNOWFLAKE"
    POSTGRES = "POSTGRES"


class FlowStatus(str, Enum):
    """Requested states for FlowStateChange."""

    RUNNING = "STATUS_RUNNING"
    PAUSED = "STATUS_PAUSED"
    TERMINATED = "STATUS_TERMINATED"


# =============================================================================
# Peer messages
# =============================================================================


class PostgresConfig(WireModel):
    host: str
    port: int
    user: str
    password: str = ""
    database: str
    tls_host: str | None = None
    metadata_schema: str | None = None


class SnowflakeConfig(WireModel):
    account_id: str
    username: str
    private_key: str | None = None
    password: str | None = None
    database: str
    warehouse: str
    role: str | None = None
    query_timeout: int | None = None
    metadata_schema: str | None = None


class BigqueryConfig(WireModel):
    auth_type: str
    project_id: str
    private_key_id: str | None = None
    private_key: str | None = None
    client_email: str | None = None
    client_id: str | None = None
    auth_uri: str | None = None
    token_uri: str | None = None
    auth_provider_x509_cert_url: str | None = None
    client_x509_cert_url: str | None = None
    dataset_id: str


class Peer(WireModel):
    """
    A peer connection definition.

    Exactly one of the *_config members is set, matching `type`.
    """

    name: str
    type: DBType
    postgres_config: PostgresConfig | None = None
    snowflake_config: SnowflakeConfig | None = None
    bigquery_config: BigqueryConfig | None = None


class CreatePeerRequest(WireModel):
    peer: Peer
    allow_update: bool = False


class CreatePeerResponse(WireModel):
    """Response from POST /v1/peers/create. status is CREATED or FAILED."""

    status: str = ""
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.status in ("FAILED", "2")


class ValidatePeerRequest(WireModel):
    peer: Peer


class ValidatePeerResponse(WireModel):
    """Response from POST /v1/peers/validate. status is VALID or INVALID."""

    status: str = ""
    message: str = ""

    @property
    def valid(self) -> bool:
        return self.status in ("VALID", "1")


class DropPeerRequest(WireModel):
    peer_name: str


class PeerListItem(WireModel):
    name: str
    type: str = ""


class ListPeersResponse(WireModel):
    """
    Response from GET /v1/peers/list.

    source_items and destination_items are the subsets usable on each side
    of a mirror.
    """

    items: list[PeerListItem] = Field(default_factory=list)
    source_items: list[PeerListItem] = Field(default_factory=list)
    destination_items: list[PeerListItem] = Field(default_factory=list)


# =============================================================================
# Mirror messages
# =============================================================================


class TableMapping(WireModel):
    source_table_identifier: str
    destination_table_identifier: str
    partition_key: str | None = None
    exclude: list[str] | None = None


class FlowConnectionConfigs(WireModel):
    """
    Connection configuration of a CDC mirror.

    Optional tuning fields stay None unless the caller supplied them.
    """

    flow_job_name: str
    source_name: str
    destination_name: str
    table_mappings: list[TableMapping] = Field(default_factory=list)
    max_batch_size: int | None = None
    idle_timeout_seconds: int | None = None
    do_initial_snapshot: bool | None = None
    publication_name: str | None = None
    replication_slot_name: str | None = None
    snapshot_num_rows_per_partition: int | None = None
    snapshot_max_parallel_workers: int | None = None
    snapshot_num_tables_in_parallel: int | None = None
    soft_delete_col_name: str | None = None
    synced_at_col_name: str | None = None
    env: dict[str, str] | None = None


class CreateCDCFlowRequest(WireModel):
    connection_configs: FlowConnectionConfigs


class CreateCDCFlowResponse(WireModel):
    workflow_id: str = ""


class ListMirrorsItem(WireModel):
    id: int | None = None
    workflow_id: str = ""
    name: str
    source_name: str = ""
    source_type: str = ""
    destination_name: str = ""
    destination_type: str = ""
    created_at: float = 0.0
    is_cdc: bool = False


class ListMirrorsResponse(WireModel):
    mirrors: list[ListMirrorsItem] = Field(default_factory=list)


class ListMirrorNamesResponse(WireModel):
    names: list[str] = Field(default_factory=list)


class MirrorStatusRequest(WireModel):
    flow_job_name: str
    include_flow_info: bool = True
    exclude_batches: bool = False


class SnapshotStatus(WireModel):
    clones: list[dict] = Field(default_factory=list)


class CDCMirrorStatus(WireModel):
    rows_synced: int = 0
    source_type: str = ""
    destination_type: str = ""
    snapshot_status: SnapshotStatus | None = None
    cdc_batches: list[dict] = Field(default_factory=list)


class MirrorStatusResponse(WireModel):
    """Response from POST /v1/mirrors/status."""

    flow_job_name: str = ""
    cdc_status: CDCMirrorStatus | None = None
    error_message: str = ""
    current_flow_state: str = ""
    created_at: str | None = None


class CDCFlowConfigUpdate(WireModel):
    additional_tables: list[TableMapping] = Field(default_factory=list)
    removed_tables: list[TableMapping] = Field(default_factory=list)
    batch_size: int | None = None
    idle_timeout: int | None = None


class FlowConfigUpdate(WireModel):
    cdc_flow_config_update: CDCFlowConfigUpdate


class FlowStateChangeRequest(WireModel):
    flow_job_name: str
    requested_flow_state: FlowStatus
    flow_config_update: FlowConfigUpdate | None = None
    drop_mirror_stats: bool | None = None
    skip_destination_drop: bool | None = None
