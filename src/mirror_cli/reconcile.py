"""
Validate and apply pipelines for batches of configuration documents.

Three modes:
- validate: translate every document, report each result, never stop
  early; the batch fails if any document failed.
- dry run: list what would be applied; nothing is translated or sent.
- apply: translate and submit documents strictly in load order and stop
  at the first failure. Documents already applied stay applied; the rest
  are reported as skipped.

Results come back as a BatchReport so the caller decides how to present
them. Nothing here prints.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from mirror_cli.documents import Document
from mirror_cli.errors import MirrorCliError, RemoteError, RemoteTimeoutError
from mirror_cli.service import MirrorService
from mirror_cli.translate import translate
from mirror_cli.types import CreateCDCFlowRequest, Peer

logger = logging.getLogger(__name__)

# Deadline for a whole apply batch, in seconds
APPLY_TIMEOUT_SECONDS = 60.0


class Outcome(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    PLANNED = "planned"
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


_FAILED_OUTCOMES = (Outcome.INVALID, Outcome.FAILED)


@dataclass(frozen=True)
class DocumentResult:
    """
    Outcome for one document in a batch.

    Attributes:
        document: The document processed.
        outcome: What happened to it.
        error: The error when outcome is INVALID or FAILED.
        detail: Extra information from the service (workflow ID, message).
    """

    document: Document
    outcome: Outcome
    error: MirrorCliError | None = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome in _FAILED_OUTCOMES


@dataclass
class BatchReport:
    """Per-document results of one validate, dry-run or apply invocation."""

    mode: str
    results: list[DocumentResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not any(r.failed for r in self.results)

    @property
    def failures(self) -> list[DocumentResult]:
        return [r for r in self.results if r.failed]

    @property
    def first_failure(self) -> DocumentResult | None:
        failures = self.failures
        return failures[0] if failures else None

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)


def validate_documents(documents: list[Document]) -> BatchReport:
    """
    Translate every document without contacting the service.

    Individual failures are recorded and do not stop the batch.

    Returns:
        BatchReport with one VALID or INVALID result per document.
    """
    report = BatchReport(mode="validate")
    for document in documents:
        try:
            translate(document)
        except MirrorCliError as e:
            logger.info(f"{document.label} is invalid: {e}")
            report.results.append(DocumentResult(document, Outcome.INVALID, error=e))
        else:
            report.results.append(DocumentResult(document, Outcome.VALID))
    return report


async def _submit(
    service: MirrorService,
    request: Peer | CreateCDCFlowRequest,
    allow_update: bool,
) -> str:
    if isinstance(request, Peer):
        response = await service.create_peer(request, allow_update=allow_update)
        if response.failed:
            raise RemoteError(
                f"create peer '{request.name}'",
                response.message or "service reported FAILED",
            )
        return response.message

    response = await service.create_cdc_mirror(request)
    return f"workflow {response.workflow_id}" if response.workflow_id else ""


async def apply_documents(
    documents: list[Document],
    service: MirrorService | None,
    *,
    dry_run: bool = False,
    force: bool = False,
    batch_timeout: float | None = APPLY_TIMEOUT_SECONDS,
) -> BatchReport:
    """
    Apply documents to the flow service in order.

    Args:
        documents: Documents in load order.
        service: The flow service. Not used (and may be None) for dry runs.
        dry_run: Only report what would be applied.
        force: Allow updating peers that already exist.
        batch_timeout: Seconds the whole batch may take; None for no limit.

    Returns:
        BatchReport. On failure the failing document is FAILED and every
        later document is SKIPPED.
    """
    if dry_run:
        return BatchReport(
            mode="dry-run",
            results=[DocumentResult(d, Outcome.PLANNED) for d in documents],
        )
    if service is None:
        raise ValueError("a service is required unless dry_run is set")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + batch_timeout if batch_timeout is not None else None
    report = BatchReport(mode="apply")

    for index, document in enumerate(documents):
        logger.info(f"Applying {document.label}")
        try:
            request = translate(document)
            if deadline is None:
                detail = await _submit(service, request, force)
            else:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise RemoteTimeoutError(f"apply {document.label}", batch_timeout)
                try:
                    detail = await asyncio.wait_for(
                        _submit(service, request, force), timeout=remaining
                    )
                except asyncio.TimeoutError as e:
                    raise RemoteTimeoutError(f"apply {document.label}", batch_timeout) from e
        except MirrorCliError as e:
            logger.warning(f"Stopping batch: {document.label} failed: {e}")
            report.results.append(DocumentResult(document, Outcome.FAILED, error=e))
            report.results.extend(
                DocumentResult(d, Outcome.SKIPPED) for d in documents[index + 1 :]
            )
            break
        report.results.append(DocumentResult(document, Outcome.APPLIED, detail=detail))

    return report
