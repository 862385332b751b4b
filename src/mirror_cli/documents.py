"""
Declarative configuration documents.

A document is one YAML file describing either a peer or a mirror:

    apiVersion: v1
    kind: Peer
    metadata:
      name: pg_source
      environment: production
    spec:
      type: postgres
      config:
        host: db.internal
        user: replicator
        password: ${PG_PASSWORD}
        database: app

Documents are parsed leniently: `kind` and `spec.type` are kept as the
literal strings from the file, so an unknown kind still loads and is
rejected later by the translator with a message naming the bad value.

A peer's `spec.config` is decoded directly into one of the per-kind
settings records (PostgresSettings, SnowflakeSettings, BigQuerySettings)
through a discriminated union keyed by the canonical peer type.
"""

from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

PEER_KIND = "Peer"
MIRROR_KIND = "Mirror"
DOCUMENT_KINDS = [PEER_KIND, MIRROR_KIND]

# Accepted spellings of each peer type (matched case-insensitively)
PEER_TYPE_ALIASES: dict[str, str] = {
    "postgres": "postgres",
    "postgresql": "postgres",
    "pg": "postgres",
    "snowflake": "snowflake",
    "sf": "snowflake",
    "bigquery": "bigquery",
    "bq": "bigquery",
}


class _DocumentModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _blank_keys_use_defaults(cls, data: Any) -> Any:
        # A key left empty in YAML (`config:`) loads as None
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# =============================================================================
# Document structure
# =============================================================================


class Metadata(_DocumentModel):
    name: str = ""
    environment: str | None = None
    description: str | None = None


class TableMappingSpec(_DocumentModel):
    """One source -> destination table entry of a mirror."""

    source: str = ""
    destination: str = ""
    partition_key: str | None = None
    exclude_columns: list[str] | None = None


class CDCOptions(_DocumentModel):
    batch_size: int | None = None
    idle_timeout_seconds: int | None = None
    initial_snapshot: bool | None = None
    publication_name: str | None = None
    replication_slot_name: str | None = None


class SnapshotOptions(_DocumentModel):
    num_rows_per_partition: int | None = None
    max_parallel_workers: int | None = None
    num_tables_in_parallel: int | None = None


class ColumnOptions(_DocumentModel):
    soft_delete_column: str | None = None
    synced_at_column: str | None = None


class PeerValidationOptions(_DocumentModel):
    timeout: str | None = None
    retry_attempts: int | None = None


class DocumentSpec(_DocumentModel):
    """
    Payload of a document.

    Which fields are meaningful depends on the document kind:
    - Peer: type, config, validation
    - Mirror: source, destination, tables, cdc, snapshot, columns, env
    """

    # Peer
    type: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    validation: PeerValidationOptions | None = None

    # Mirror
    source: str = ""
    destination: str = ""
    tables: list[TableMappingSpec] = Field(default_factory=list)
    cdc: CDCOptions | None = None
    snapshot: SnapshotOptions | None = None
    columns: ColumnOptions | None = None
    env: dict[str, str] | None = None


class Document(_DocumentModel):
    """
    A parsed configuration document.

    Attributes:
        api_version: Informational schema version ("apiVersion" in YAML).
        kind: "Peer" or "Mirror"; other values survive parsing.
        metadata: Name, environment and description.
        spec: Kind-specific payload.
        origin: File the document was loaded from, if any. Not serialized.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: str = ""
    metadata: Metadata = Field(default_factory=Metadata)
    spec: DocumentSpec = Field(default_factory=DocumentSpec)
    origin: Path | None = Field(default=None, exclude=True)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def label(self) -> str:
        """Short description used in messages, e.g. "Peer 'pg_source'"."""
        return f"{self.kind or '<no kind>'} '{self.metadata.name}'"

    def to_yaml_dict(self) -> dict[str, Any]:
        """Dump in file layout (apiVersion alias, unset fields omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Per-kind peer settings
# =============================================================================


class PostgresSettings(_DocumentModel):
    kind: Literal["postgres"] = "postgres"
    host: str = ""
    port: int = 5432
    user: str = ""
    password: str = ""
    database: str = ""
    tls_host: str | None = None
    metadata_schema: str | None = None

    def missing_fields(self) -> list[str]:
        return [f for f in ("host", "user", "database") if not getattr(self, f)]


class SnowflakeSettings(_DocumentModel):
    kind: Literal["snowflake"] = "snowflake"
    account_id: str = ""
    username: str = ""
    private_key: str | None = None
    password: str | None = None
    database: str = ""
    warehouse: str = ""
    role: str | None = None
    query_timeout: int | None = None
    metadata_schema: str | None = None

    def missing_fields(self) -> list[str]:
        missing = [
            f
            for f in ("account_id", "username", "database", "warehouse")
            if not getattr(self, f)
        ]
        if not self.password and not self.private_key:
            missing.append("password or private_key")
        return missing


class BigQuerySettings(_DocumentModel):
    kind: Literal["bigquery"] = "bigquery"
    project_id: str = ""
    dataset_id: str = ""
    auth_type: str = "service_account"
    private_key_id: str | None = None
    private_key: str | None = None
    client_email: str | None = None
    client_id: str | None = None

    def missing_fields(self) -> list[str]:
        return [f for f in ("project_id", "dataset_id") if not getattr(self, f)]


PeerSettings = Annotated[
    Union[PostgresSettings, SnowflakeSettings, BigQuerySettings],
    Field(discriminator="kind"),
]

_PEER_SETTINGS = TypeAdapter(PeerSettings)


def canonical_peer_type(peer_type: str | None) -> str | None:
    """Map a declared peer type to its canonical kind, or None if unknown."""
    if not peer_type:
        return None
    return PEER_TYPE_ALIASES.get(peer_type.strip().lower())


def decode_peer_settings(kind: str, config: dict[str, Any]) -> PeerSettings:
    """
    Decode a peer config mapping into the settings record for `kind`.

    Args:
        kind: Canonical peer kind ("postgres", "snowflake", "bigquery").
        config: The raw `spec.config` mapping.

    Returns:
        The matching settings record.

    Raises:
        pydantic.ValidationError: If a field has the wrong type.
    """
    return _PEER_SETTINGS.validate_python({**config, "kind": kind})
