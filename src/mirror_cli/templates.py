"""Starter documents for `config export-peer` and `config export-mirror`."""

from pathlib import Path

import yaml

from mirror_cli.documents import (
    MIRROR_KIND,
    PEER_KIND,
    CDCOptions,
    Document,
    DocumentSpec,
    Metadata,
    TableMappingSpec,
)
from mirror_cli.errors import FileAccessError

DEFAULT_ENVIRONMENT = "production"


def default_peer_path(name: str, environment: str) -> Path:
    return Path("configs") / "peers" / environment / f"{name}.yaml"


def default_mirror_path(name: str, environment: str) -> Path:
    return Path("configs") / "mirrors" / environment / f"{name}.yaml"


def peer_template(name: str, environment: str = DEFAULT_ENVIRONMENT) -> Document:
    """Postgres peer document with placeholder connection values."""
    return Document(
        kind=PEER_KIND,
        metadata=Metadata(
            name=name,
            environment=environment,
            description=f"Configuration for {name} peer",
        ),
        spec=DocumentSpec(
            type="postgres",
            config={
                "host": "localhost",
                "port": 5432,
                "user": "postgres",
                "password": "${POSTGRES_PASSWORD}",
                "database": "mydb",
            },
        ),
    )


def mirror_template(name: str, environment: str = DEFAULT_ENVIRONMENT) -> Document:
    """CDC mirror document with one example table mapping."""
    return Document(
        kind=MIRROR_KIND,
        metadata=Metadata(
            name=name,
            environment=environment,
            description=f"Configuration for {name} mirror",
        ),
        spec=DocumentSpec(
            type="cdc",
            source="postgres_source",
            destination="snowflake_warehouse",
            tables=[
                TableMappingSpec(
                    source="public.example_table",
                    destination="ANALYTICS_DB.PUBLIC.EXAMPLE_TABLE",
                )
            ],
            cdc=CDCOptions(
                batch_size=1000,
                idle_timeout_seconds=60,
                initial_snapshot=True,
                publication_name="peerdb_pub",
                replication_slot_name="peerdb_slot",
            ),
        ),
    )


def write_document(document: Document, path: Path) -> Path:
    """
    Write a document as YAML, creating parent directories.

    Empty collections are dropped so the file only shows meaningful keys.

    Raises:
        FileAccessError: If the file cannot be written.
    """
    data = document.to_yaml_dict()
    data["spec"] = {k: v for k, v in data.get("spec", {}).items() if v not in ({}, [], "")}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    except OSError as e:
        raise FileAccessError(path, str(e)) from e
    return path
