"""Tests for the mirror-cli command line."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml
from typer.testing import CliRunner

from mirror_cli.cli.common import CliContext
from mirror_cli.cli.main import app
from mirror_cli.peerdb_client import PeerDBClient
from mirror_cli.types import (
    CreateCDCFlowResponse,
    CreatePeerResponse,
    ListMirrorsItem,
    ListMirrorsResponse,
    ListPeersResponse,
    MirrorStatusResponse,
    PeerListItem,
    ValidatePeerResponse,
)

runner = CliRunner()

PEER_YAML = """\
apiVersion: v1
kind: Peer
metadata:
  name: {name}
spec:
  type: {type}
  config:
    host: db
    user: replicator
    password: secret
    database: app
"""

MIRROR_YAML = """\
apiVersion: v1
kind: Mirror
metadata:
  name: orders_mirror
spec:
  source: pg_source
  destination: sf_target
  tables:
    - source: public.orders
      destination: ANALYTICS.PUBLIC.ORDERS
"""


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep settings files and env vars from the host out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for var in ("MIRROR_CLI_PEERDB_HOST", "MIRROR_CLI_PEERDB_PORT", "MIRROR_CLI_USERNAME"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def service(monkeypatch):
    """Replace the flow service connection with a mock client."""
    client = MagicMock(spec=PeerDBClient)
    client.create_peer = AsyncMock(return_value=CreatePeerResponse(status="CREATED"))
    client.validate_peer = AsyncMock(return_value=ValidatePeerResponse(status="VALID"))
    client.drop_peer = AsyncMock(return_value=None)
    client.list_peers = AsyncMock(
        return_value=ListPeersResponse(
            items=[PeerListItem(name="pg_source", type="POSTGRES")],
            source_items=[PeerListItem(name="pg_source", type="POSTGRES")],
        )
    )
    client.create_cdc_mirror = AsyncMock(return_value=CreateCDCFlowResponse(workflow_id="wf-1"))
    client.list_mirrors = AsyncMock(
        return_value=ListMirrorsResponse(
            mirrors=[
                ListMirrorsItem(
                    name="orders_mirror",
                    source_name="pg_source",
                    destination_name="sf_target",
                    created_at=1700000000,
                    is_cdc=True,
                )
            ]
        )
    )
    client.get_mirror_status = AsyncMock(
        return_value=MirrorStatusResponse(flow_job_name="orders_mirror", current_flow_state="STATUS_RUNNING")
    )
    client.pause_mirror = AsyncMock(return_value=None)
    client.resume_mirror = AsyncMock(return_value=None)
    client.drop_mirror = AsyncMock(return_value=None)
    client.update_mirror = AsyncMock(return_value=None)

    @asynccontextmanager
    async def fake_connect(settings, timeout=30.0, transport=None):
        yield client

    monkeypatch.setattr("mirror_cli.cli.common.connect", fake_connect)
    return client


def write_configs(directory, *documents):
    directory.mkdir(parents=True, exist_ok=True)
    for i, text in enumerate(documents):
        (directory / f"{i:02d}.yaml").write_text(text, encoding="utf-8")
    return directory


class TestConfigValidate:
    """Tests for `config validate`."""

    def test_all_valid(self, tmp_path):
        path = write_configs(tmp_path / "configs", PEER_YAML.format(name="pg", type="postgres"), MIRROR_YAML)

        result = runner.invoke(app, ["config", "validate", "-f", str(path)])

        assert result.exit_code == 0
        assert "All 2 configurations are valid" in result.output

    def test_reports_every_invalid_document(self, tmp_path):
        path = write_configs(
            tmp_path / "configs",
            PEER_YAML.format(name="a", type="oracle"),
            PEER_YAML.format(name="b", type="postgres"),
            PEER_YAML.format(name="c", type="mysql"),
        )

        result = runner.invoke(app, ["config", "validate", "-f", str(path)])

        assert result.exit_code == 1
        assert "'oracle'" in result.output
        assert "'mysql'" in result.output
        assert "2 of 3 configurations are invalid" in result.output

    def test_blank_config_reported_per_document(self, tmp_path):
        """A blank `config:` should fail its own document, not the whole load."""
        path = write_configs(
            tmp_path / "configs",
            PEER_YAML.format(name="a", type="postgres"),
            "kind: Peer\nmetadata:\n  name: b\nspec:\n  type: postgres\n  config:\n",
        )

        result = runner.invoke(app, ["config", "validate", "-f", str(path)])

        assert result.exit_code == 1
        assert "1 of 2 configurations are invalid" in result.output

    def test_missing_path_fails(self, tmp_path):
        result = runner.invoke(app, ["config", "validate", "-f", str(tmp_path / "nope")])

        assert result.exit_code == 1


class TestConfigApply:
    """Tests for `config apply`."""

    def test_dry_run_makes_no_calls(self, tmp_path, service):
        path = write_configs(tmp_path / "configs", PEER_YAML.format(name="pg", type="postgres"), MIRROR_YAML)

        result = runner.invoke(app, ["config", "apply", "-f", str(path), "--dry-run"])

        assert result.exit_code == 0
        assert "DRY-RUN" in result.output
        service.create_peer.assert_not_called()
        service.create_cdc_mirror.assert_not_called()

    def test_apply_submits_in_order(self, tmp_path, service):
        path = write_configs(tmp_path / "configs", PEER_YAML.format(name="pg", type="postgres"), MIRROR_YAML)

        result = runner.invoke(app, ["config", "apply", "-f", str(path)])

        assert result.exit_code == 0
        assert "Successfully applied 2 configurations" in result.output
        service.create_peer.assert_awaited_once()
        service.create_cdc_mirror.assert_awaited_once()

    def test_apply_stops_on_failure(self, tmp_path, service):
        path = write_configs(
            tmp_path / "configs",
            PEER_YAML.format(name="bad", type="oracle"),
            MIRROR_YAML,
        )

        result = runner.invoke(app, ["config", "apply", "-f", str(path)])

        assert result.exit_code == 1
        assert "1 failed, 1 not attempted" in result.output
        service.create_cdc_mirror.assert_not_called()


class TestConfigSettings:
    """Tests for `config set`, `config show` and `config init`."""

    def test_set_then_show(self, isolated_home):
        result = runner.invoke(app, ["config", "set", "--host", "peerdb.internal", "--password", "pw"])

        assert result.exit_code == 0
        assert "[hidden]" in result.output
        saved = yaml.safe_load((isolated_home / ".mirror_cli" / "config.yaml").read_text())
        assert saved["peerdb_host"] == "peerdb.internal"

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "peerdb.internal:8112" in result.output
        assert "[set]" in result.output

    def test_set_without_values_fails(self):
        result = runner.invoke(app, ["config", "set"])

        assert result.exit_code == 1

    def test_root_flags_override_settings(self):
        result = runner.invoke(app, ["--host", "flag-host", "--port", "9999", "config", "show"])

        assert result.exit_code == 0
        assert "flag-host:9999" in result.output

    def test_init_does_not_overwrite(self, isolated_home):
        assert runner.invoke(app, ["config", "init"]).exit_code == 0
        runner.invoke(app, ["config", "set", "--host", "custom"])

        result = runner.invoke(app, ["config", "init"])

        assert "already exists" in result.output
        saved = yaml.safe_load((isolated_home / ".mirror_cli" / "config.yaml").read_text())
        assert saved["peerdb_host"] == "custom"


class TestConfigExport:
    """Tests for `config export-peer` and `config export-mirror`."""

    def test_export_peer_default_path(self, tmp_path):
        result = runner.invoke(app, ["config", "export-peer", "pg_source"])

        assert result.exit_code == 0
        path = tmp_path / "configs" / "peers" / "production" / "pg_source.yaml"
        data = yaml.safe_load(path.read_text())
        assert data["kind"] == "Peer"
        assert data["metadata"]["name"] == "pg_source"
        assert data["spec"]["config"]["password"] == "${POSTGRES_PASSWORD}"

    def test_exported_mirror_validates(self, tmp_path):
        out = tmp_path / "m.yaml"
        assert runner.invoke(app, ["config", "export-mirror", "m", "-o", str(out)]).exit_code == 0

        result = runner.invoke(app, ["config", "validate", "-f", str(out)])

        assert result.exit_code == 0


class TestPeerCommands:
    """Tests for the `peer` command group."""

    def test_create_postgres_peer(self, service):
        result = runner.invoke(
            app,
            [
                "peer", "create", "--name", "pg", "--type", "postgres",
                "--pg-host", "db", "--pg-user", "u", "--pg-database", "app",
            ],
        )

        assert result.exit_code == 0
        peer = service.create_peer.call_args.args[0]
        assert peer.postgres_config.port == 5432
        assert peer.postgres_config.metadata_schema == "_peerdb_internal"
        assert service.create_peer.call_args.kwargs == {"allow_update": False}

    def test_create_with_missing_flags_fails_before_connecting(self, service):
        result = runner.invoke(app, ["peer", "create", "--name", "pg", "--type", "postgres"])

        assert result.exit_code == 1
        service.create_peer.assert_not_called()

    def test_create_unknown_type(self, service):
        result = runner.invoke(app, ["peer", "create", "--name", "x", "--type", "oracle"])

        assert result.exit_code == 1
        service.create_peer.assert_not_called()

    def test_validate_snowflake_peer(self, service):
        result = runner.invoke(
            app,
            [
                "peer", "validate", "--name", "sf", "--type", "snowflake",
                "--sf-account", "acct", "--sf-user", "u", "--sf-password", "p",
                "--sf-database", "DB", "--sf-warehouse", "WH",
            ],
        )

        assert result.exit_code == 0
        assert "valid" in result.output
        peer = service.validate_peer.call_args.args[0]
        assert peer.snowflake_config.query_timeout == 300

    def test_list_peers(self, service):
        result = runner.invoke(app, ["peer", "list"])

        assert result.exit_code == 0
        assert "pg_source" in result.output

    def test_drop_declined(self, service):
        """A declined confirmation should exit 1 without dropping."""
        result = runner.invoke(
            app, ["peer", "drop", "pg"], obj=CliContext(confirm=lambda prompt: False)
        )

        assert result.exit_code == 1
        service.drop_peer.assert_not_called()

    def test_drop_forced(self, service):
        result = runner.invoke(app, ["peer", "drop", "pg", "--force"])

        assert result.exit_code == 0
        service.drop_peer.assert_awaited_once_with("pg")


class TestMirrorCommands:
    """Tests for the `mirror` command group."""

    def test_create_mirror(self, service):
        result = runner.invoke(
            app,
            [
                "mirror", "create", "--name", "m", "--source", "pg", "--destination", "sf",
                "--tables", "public.a->A,public.b->B",
            ],
        )

        assert result.exit_code == 0
        assert "wf-1" in result.output
        configs = service.create_cdc_mirror.call_args.args[0].connection_configs
        assert len(configs.table_mappings) == 2
        assert configs.max_batch_size == 1000
        assert configs.idle_timeout_seconds == 60
        assert configs.do_initial_snapshot is True
        assert configs.publication_name is None

    def test_create_mirror_bad_mapping(self, service):
        result = runner.invoke(
            app,
            ["mirror", "create", "--name", "m", "--source", "pg", "--destination", "sf", "--tables", "oops"],
        )

        assert result.exit_code == 1
        service.create_cdc_mirror.assert_not_called()

    def test_list_mirrors(self, service):
        result = runner.invoke(app, ["mirror", "list"])

        assert result.exit_code == 0
        assert "orders_mirror" in result.output
        assert "CDC" in result.output

    def test_status_json(self, service):
        result = runner.invoke(app, ["mirror", "status", "orders_mirror", "--json"])

        assert result.exit_code == 0
        assert '"current_flow_state": "STATUS_RUNNING"' in result.output

    def test_pause_and_resume(self, service):
        assert runner.invoke(app, ["mirror", "pause", "m"]).exit_code == 0
        assert runner.invoke(app, ["mirror", "resume", "m"]).exit_code == 0

        service.pause_mirror.assert_awaited_once_with("m")
        service.resume_mirror.assert_awaited_once_with("m")

    def test_edit_mirror(self, service):
        result = runner.invoke(app, ["mirror", "edit", "m", "--add-tables", "public.c->C", "--batch-size", "500"])

        assert result.exit_code == 0
        name, update = service.update_mirror.call_args.args
        assert name == "m"
        assert update.cdc_flow_config_update.batch_size == 500
        assert update.cdc_flow_config_update.idle_timeout is None

    def test_edit_without_changes_fails(self, service):
        result = runner.invoke(app, ["mirror", "edit", "m"])

        assert result.exit_code == 1
        service.update_mirror.assert_not_called()

    def test_drop_mirror_declined(self, service):
        result = runner.invoke(
            app, ["mirror", "drop", "m"], obj=CliContext(confirm=lambda prompt: False)
        )

        assert result.exit_code == 1
        service.drop_mirror.assert_not_called()

    def test_drop_mirror_confirmed(self, service):
        result = runner.invoke(
            app,
            ["mirror", "drop", "m", "--skip-destination-drop"],
            obj=CliContext(confirm=lambda prompt: True),
        )

        assert result.exit_code == 0
        service.drop_mirror.assert_awaited_once_with("m", skip_destination_drop=True)


class TestDropConfirmation:
    """The drop prompt must be answered before any connection is opened."""

    @pytest.fixture
    def connections(self, monkeypatch):
        opened = []
        client = MagicMock(spec=PeerDBClient)
        client.drop_peer = AsyncMock(return_value=None)
        client.drop_mirror = AsyncMock(return_value=None)

        @asynccontextmanager
        async def recording_connect(settings, timeout=30.0, transport=None):
            opened.append(settings)
            yield client

        monkeypatch.setattr("mirror_cli.cli.common.connect", recording_connect)
        return opened

    @pytest.mark.parametrize("group", ["peer", "mirror"])
    def test_declined_drop_never_connects(self, connections, group):
        """Declining should exit 1 without opening a connection."""
        result = runner.invoke(
            app, [group, "drop", "x"], obj=CliContext(confirm=lambda prompt: False)
        )

        assert result.exit_code == 1
        assert connections == []

    @pytest.mark.parametrize("group", ["peer", "mirror"])
    def test_confirmed_drop_prompts_once(self, connections, group):
        """Confirming should prompt exactly once and then connect."""
        prompts = []

        def confirm(prompt):
            prompts.append(prompt)
            return True

        result = runner.invoke(app, [group, "drop", "x"], obj=CliContext(confirm=confirm))

        assert result.exit_code == 0
        assert len(prompts) == 1
        assert f"drop {group} 'x'" in prompts[0]
        assert len(connections) == 1
