"""
Command-line client for PeerDB mirrors.

This package manages peers and CDC mirrors on a PeerDB flow service,
either one command at a time or declaratively from YAML documents:

- Documents: Peer and Mirror YAML documents with ${VAR} interpolation
- Translation: Documents and flags to flow service request messages
- Reconciliation: Ordered, fail-fast apply and non-short-circuiting validate
- PeerDBClient: httpx client for the flow service HTTP gateway
- Settings: Connection settings from file, environment and flags
"""

__version__ = "0.1.0"

from mirror_cli.documents import Document
from mirror_cli.errors import (
    ConfirmationDeclinedError,
    FileAccessError,
    MirrorCliError,
    ParseError,
    RemoteError,
    RemoteTimeoutError,
    UnsupportedKindError,
    ValidationError,
)
from mirror_cli.loader import load_documents
from mirror_cli.peerdb_client import PeerDBClient, connect
from mirror_cli.reconcile import BatchReport, Outcome, apply_documents, validate_documents
from mirror_cli.service import MirrorService
from mirror_cli.settings import Settings, load_settings
from mirror_cli.translate import translate

__all__ = [
    "__version__",
    # Documents
    "Document",
    "load_documents",
    "translate",
    # Reconciliation
    "BatchReport",
    "Outcome",
    "apply_documents",
    "validate_documents",
    # Service
    "MirrorService",
    "PeerDBClient",
    "connect",
    # Settings
    "Settings",
    "load_settings",
    # Errors
    "MirrorCliError",
    "FileAccessError",
    "ParseError",
    "UnsupportedKindError",
    "ValidationError",
    "RemoteError",
    "RemoteTimeoutError",
    "ConfirmationDeclinedError",
]
