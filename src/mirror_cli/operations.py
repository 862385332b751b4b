"""
Single-entity operations that need more than one remote call or a
confirmation step: dropping peers and mirrors, and editing mirrors.

Destructive operations take a `confirm` callable so the interactive prompt
can be replaced in tests or scripted use.
"""

import logging
from collections.abc import Callable, Iterable

from mirror_cli.errors import ConfirmationDeclinedError, ValidationError
from mirror_cli.service import MirrorService
from mirror_cli.types import CDCFlowConfigUpdate, FlowConfigUpdate, TableMapping

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

TABLE_MAPPING_SEPARATOR = "->"


def parse_table_mapping(text: str) -> TableMapping:
    """
    Parse a "source->destination" table mapping.

    Raises:
        ValidationError: If the text is not exactly two non-empty names
            separated by "->".
    """
    parts = [p.strip() for p in text.split(TABLE_MAPPING_SEPARATOR)]
    if len(parts) != 2 or not all(parts):
        raise ValidationError(
            f"table mapping {text!r}",
            ["expected format source->destination"],
            ["tables"],
        )
    return TableMapping(
        source_table_identifier=parts[0],
        destination_table_identifier=parts[1],
    )


def parse_table_mappings(values: Iterable[str]) -> list[TableMapping]:
    """Parse repeated and/or comma-separated table mapping arguments."""
    mappings = []
    for value in values:
        for item in value.split(","):
            if item.strip():
                mappings.append(parse_table_mapping(item))
    return mappings


def require_confirmation(confirm: Confirm, action: str) -> None:
    """
    Ask confirm() about a destructive action.

    Raises:
        ConfirmationDeclinedError: If confirm returns False.
    """
    prompt = f"Are you sure you want to {action}? This action cannot be undone."
    if not confirm(prompt):
        raise ConfirmationDeclinedError(action)


async def drop_peer(
    service: MirrorService,
    peer_name: str,
    *,
    confirm: Confirm,
    force: bool = False,
) -> None:
    """
    Drop a peer after confirmation.

    Raises:
        ConfirmationDeclinedError: If not forced and confirm returns False.
            No remote call is made in that case.
        RemoteError: If the drop fails.
    """
    if not force:
        require_confirmation(confirm, f"drop peer '{peer_name}'")
    logger.info(f"Dropping peer {peer_name}")
    await service.drop_peer(peer_name)


async def drop_mirror(
    service: MirrorService,
    mirror_name: str,
    *,
    confirm: Confirm,
    force: bool = False,
    skip_destination_drop: bool = False,
) -> None:
    """
    Terminate and drop a mirror after confirmation.

    Raises:
        ConfirmationDeclinedError: If not forced and confirm returns False.
        RemoteError: If the drop fails.
    """
    if not force:
        require_confirmation(confirm, f"drop mirror '{mirror_name}'")
    logger.info(f"Dropping mirror {mirror_name} (skip destination drop: {skip_destination_drop})")
    await service.drop_mirror(mirror_name, skip_destination_drop=skip_destination_drop)


def build_mirror_update(
    add_tables: Iterable[str] = (),
    remove_tables: Iterable[str] = (),
    batch_size: int | None = None,
    idle_timeout: int | None = None,
) -> FlowConfigUpdate:
    """
    Build a config update for a CDC mirror.

    Zero or None batch_size / idle_timeout leave the current value alone.

    Raises:
        ValidationError: If a table mapping is malformed or nothing would
            change.
    """
    update = CDCFlowConfigUpdate(
        additional_tables=parse_table_mappings(add_tables),
        removed_tables=parse_table_mappings(remove_tables),
        batch_size=batch_size or None,
        idle_timeout=idle_timeout or None,
    )
    if not (
        update.additional_tables
        or update.removed_tables
        or update.batch_size
        or update.idle_timeout
    ):
        raise ValidationError(
            "mirror update",
            ["nothing to change: pass tables to add/remove, a batch size or an idle timeout"],
        )
    return FlowConfigUpdate(cdc_flow_config_update=update)


async def edit_mirror(
    service: MirrorService,
    mirror_name: str,
    update: FlowConfigUpdate,
) -> None:
    """Apply an update to a mirror (pause, update, resume)."""
    logger.info(f"Updating mirror {mirror_name}")
    await service.update_mirror(mirror_name, update)
