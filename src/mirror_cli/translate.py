"""
Translation of configuration documents into flow service requests.

All functions here are pure: they never touch the network or the
filesystem. Peer documents become a `Peer` message (sent inside a
CreatePeerRequest); mirror documents become a `CreateCDCFlowRequest`.

The peer builder is shared with the `peer create` / `peer validate` flags so
that flag input and document input are checked by the same rules.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from mirror_cli.documents import (
    DOCUMENT_KINDS,
    MIRROR_KIND,
    PEER_KIND,
    PEER_TYPE_ALIASES,
    Document,
    PeerSettings,
    PostgresSettings,
    SnowflakeSettings,
    canonical_peer_type,
    decode_peer_settings,
)
from mirror_cli.errors import UnsupportedKindError, ValidationError
from mirror_cli.types import (
    BigqueryConfig,
    CreateCDCFlowRequest,
    DBType,
    FlowConnectionConfigs,
    Peer,
    PostgresConfig,
    SnowflakeConfig,
    TableMapping,
)

# Fixed Google OAuth endpoints for service-account credentials
BIGQUERY_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
BIGQUERY_TOKEN_URI = "https://oauth2.googleapis.com/token"
BIGQUERY_AUTH_PROVIDER_CERT_URL = "https://www.googleapis.com/oauth2/v1/certs"


def resolve_peer_type(peer_type: str | None) -> str:
    """
    Return the canonical kind for a declared peer type.

    Raises:
        UnsupportedKindError: If the type is not recognized.
    """
    kind = canonical_peer_type(peer_type)
    if kind is None:
        raise UnsupportedKindError(
            "peer type", peer_type or "", sorted(PEER_TYPE_ALIASES)
        )
    return kind


def _field_errors(e: PydanticValidationError) -> tuple[list[str], list[str]]:
    fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
    problems = [f"{f}: {err['msg']}" for f, err in zip(fields, e.errors())]
    return problems, fields


def _peer_message(name: str, settings: PeerSettings) -> Peer:
    if isinstance(settings, PostgresSettings):
        return Peer(
            name=name,
            type=DBType.POSTGRES,
            postgres_config=PostgresConfig(
                host=settings.host,
                port=settings.port,
                user=settings.user,
                password=settings.password,
                database=settings.database,
                tls_host=settings.tls_host or None,
                metadata_schema=settings.metadata_schema or None,
            ),
        )
    if isinstance(settings, SnowflakeSettings):
        return Peer(
            name=name,
            type=DBType.SNOWFLAKE,
            snowflake_config=SnowflakeConfig(
                account_id=settings.account_id,
                username=settings.username,
                private_key=settings.private_key or None,
                password=settings.password or None,
                database=settings.database,
                warehouse=settings.warehouse,
                role=settings.role or None,
                query_timeout=settings.query_timeout,
                metadata_schema=settings.metadata_schema or None,
            ),
        )
    return Peer(
        name=name,
        type=DBType.BIGQUERY,
        bigquery_config=BigqueryConfig(
            auth_type=settings.auth_type,
            project_id=settings.project_id,
            private_key_id=settings.private_key_id,
            private_key=settings.private_key,
            client_email=settings.client_email,
            client_id=settings.client_id,
            auth_uri=BIGQUERY_AUTH_URI,
            token_uri=BIGQUERY_TOKEN_URI,
            auth_provider_x509_cert_url=BIGQUERY_AUTH_PROVIDER_CERT_URL,
            dataset_id=settings.dataset_id,
        ),
    )


def build_peer(name: str, peer_type: str | None, config: Mapping[str, Any]) -> Peer:
    """
    Build a Peer message from a declared type and a config mapping.

    Args:
        name: Peer name.
        peer_type: Declared type, any accepted alias, any case.
        config: Connection settings for that type.

    Returns:
        Peer message with the matching *_config member set.

    Raises:
        UnsupportedKindError: If peer_type is not recognized.
        ValidationError: If fields are missing or have the wrong type.
    """
    kind = resolve_peer_type(peer_type)
    subject = f"Peer '{name}'"

    try:
        settings = decode_peer_settings(kind, dict(config))
    except PydanticValidationError as e:
        problems, fields = _field_errors(e)
        raise ValidationError(subject, problems, fields) from e

    missing = settings.missing_fields()
    if not name:
        missing.insert(0, "name")
    if missing:
        raise ValidationError(
            subject,
            [f"{kind} peer requires {', '.join(missing)}"],
            missing,
        )

    return _peer_message(name, settings)


def peer_from_document(document: Document) -> Peer:
    """Translate a Peer document. See build_peer for errors."""
    return build_peer(document.metadata.name, document.spec.type, document.spec.config)


def mirror_from_document(document: Document) -> CreateCDCFlowRequest:
    """
    Translate a Mirror document into a CreateCDCFlowRequest.

    Table mappings are copied in document order without deduplication.
    The cdc, snapshot and columns sub-records are merged into the flat
    connection config; anything absent from the document stays unset.

    Raises:
        ValidationError: If name, source, destination or a table's
            identifiers are empty, or the batch size is not positive.
    """
    spec = document.spec
    problems: list[str] = []
    fields: list[str] = []

    def require(field: str, value: str) -> None:
        if not value:
            problems.append(f"{field} is required")
            fields.append(field)

    require("metadata.name", document.metadata.name)
    require("spec.source", spec.source)
    require("spec.destination", spec.destination)
    for i, table in enumerate(spec.tables):
        require(f"spec.tables[{i}].source", table.source)
        require(f"spec.tables[{i}].destination", table.destination)
    if spec.cdc and spec.cdc.batch_size is not None and spec.cdc.batch_size <= 0:
        problems.append("spec.cdc.batch_size must be positive")
        fields.append("spec.cdc.batch_size")

    if problems:
        raise ValidationError(f"Mirror '{document.metadata.name}'", problems, fields)

    configs = FlowConnectionConfigs(
        flow_job_name=document.metadata.name,
        source_name=spec.source,
        destination_name=spec.destination,
        table_mappings=[
            TableMapping(
                source_table_identifier=t.source,
                destination_table_identifier=t.destination,
                partition_key=t.partition_key,
                exclude=t.exclude_columns,
            )
            for t in spec.tables
        ],
        env=dict(spec.env) if spec.env else None,
    )

    updates: dict[str, Any] = {}
    if spec.cdc:
        updates.update(
            max_batch_size=spec.cdc.batch_size,
            idle_timeout_seconds=spec.cdc.idle_timeout_seconds,
            do_initial_snapshot=spec.cdc.initial_snapshot,
            publication_name=spec.cdc.publication_name,
            replication_slot_name=spec.cdc.replication_slot_name,
        )
    if spec.snapshot:
        updates.update(
            snapshot_num_rows_per_partition=spec.snapshot.num_rows_per_partition,
            snapshot_max_parallel_workers=spec.snapshot.max_parallel_workers,
            snapshot_num_tables_in_parallel=spec.snapshot.num_tables_in_parallel,
        )
    if spec.columns:
        updates.update(
            soft_delete_col_name=spec.columns.soft_delete_column,
            synced_at_col_name=spec.columns.synced_at_column,
        )

    return CreateCDCFlowRequest(connection_configs=configs.model_copy(update=updates))


def translate(document: Document) -> Peer | CreateCDCFlowRequest:
    """
    Translate any document into the request the flow service expects.

    Raises:
        UnsupportedKindError: If the document kind or peer type is unknown.
        ValidationError: If required fields are missing.
    """
    if document.kind == PEER_KIND:
        return peer_from_document(document)
    if document.kind == MIRROR_KIND:
        return mirror_from_document(document)
    raise UnsupportedKindError("document kind", document.kind, DOCUMENT_KINDS)
