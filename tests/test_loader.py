"""
Tests for document loading.

These tests verify the loader correctly:
- Substitutes ${VAR} placeholders and leaves unresolved ones alone
- Walks directories in lexicographic path order, skipping non-YAML files
- Reports the offending file on parse errors
- Reports missing paths as FileAccessError
"""

from pathlib import Path

import pytest

from mirror_cli.errors import FileAccessError, ParseError
from mirror_cli.loader import interpolate, load_document, load_documents, parse_document

PEER_YAML = """\
apiVersion: v1
kind: Peer
metadata:
  name: {name}
spec:
  type: postgres
  config:
    host: db.internal
    user: replicator
    password: ${{PG_PASSWORD}}
    database: app
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestInterpolate:
    """Tests for interpolate()."""

    def test_text_without_placeholders_is_unchanged(self):
        """Text with no ${...} should come back identical."""
        text = "host: db\nport: 5432\nnote: $HOME and {braces}\n"
        assert interpolate(text, {"HOME": "/root"}) == text

    def test_resolves_set_variables(self):
        """Placeholders for set variables should be replaced by their values."""
        result = interpolate("password: ${PG_PASSWORD}", {"PG_PASSWORD": "s3cret"})
        assert result == "password: s3cret"

    def test_unresolved_placeholder_left_literal(self):
        """Placeholders for unset variables should remain as written."""
        result = interpolate("password: ${MISSING_VAR}", {})
        assert result == "password: ${MISSING_VAR}"

    def test_multiple_placeholders_on_one_line(self):
        """Every placeholder in the text should be processed."""
        result = interpolate("${A}-${B}-${C}", {"A": "1", "C": "3"})
        assert result == "1-${B}-3"

    def test_defaults_to_process_environment(self, monkeypatch):
        """Without an explicit mapping, os.environ should be used."""
        monkeypatch.setenv("MIRROR_TEST_HOST", "pg.example.com")
        assert interpolate("host: ${MIRROR_TEST_HOST}") == "host: pg.example.com"


class TestParseDocument:
    """Tests for parse_document()."""

    def test_parses_peer_document(self, tmp_path):
        """A valid peer document should populate kind, metadata and spec."""
        doc = parse_document(PEER_YAML.format(name="pg_source"), tmp_path / "pg.yaml")

        assert doc.kind == "Peer"
        assert doc.api_version == "v1"
        assert doc.name == "pg_source"
        assert doc.spec.type == "postgres"
        assert doc.spec.config["host"] == "db.internal"
        assert doc.origin == tmp_path / "pg.yaml"

    def test_unknown_kind_still_loads(self, tmp_path):
        """Unknown kinds should survive parsing for the translator to reject."""
        doc = parse_document("kind: Widget\nmetadata:\n  name: w\n", tmp_path / "w.yaml")
        assert doc.kind == "Widget"

    def test_invalid_yaml_raises_parse_error(self, tmp_path):
        """Malformed YAML should raise ParseError naming the file."""
        origin = tmp_path / "broken.yaml"
        with pytest.raises(ParseError) as exc_info:
            parse_document("kind: Peer\nmetadata: [unclosed\n", origin)

        assert exc_info.value.path == origin
        assert "broken.yaml" in str(exc_info.value)

    def test_empty_file_raises_parse_error(self, tmp_path):
        """An empty file holds no document."""
        with pytest.raises(ParseError, match="no document"):
            parse_document("", tmp_path / "empty.yaml")

    def test_non_mapping_raises_parse_error(self, tmp_path):
        """A top-level list is not a document."""
        with pytest.raises(ParseError, match="expected a mapping"):
            parse_document("- a\n- b\n", tmp_path / "list.yaml")

    def test_wrong_structure_raises_parse_error(self, tmp_path):
        """A field of the wrong shape should be reported with its location."""
        with pytest.raises(ParseError) as exc_info:
            parse_document("kind: Mirror\nspec:\n  tables: 5\n", tmp_path / "m.yaml")

        assert "spec.tables" in str(exc_info.value)


class TestLoadDocument:
    """Tests for load_document()."""

    def test_interpolates_before_parsing(self, tmp_path):
        """Environment values should appear in the parsed config."""
        path = write(tmp_path / "pg.yaml", PEER_YAML.format(name="pg_source"))

        doc = load_document(path, {"PG_PASSWORD": "hunter2"})

        assert doc.spec.config["password"] == "hunter2"

    def test_unresolved_placeholder_reaches_config(self, tmp_path):
        """An unset variable should leave the literal placeholder in the value."""
        path = write(tmp_path / "pg.yaml", PEER_YAML.format(name="pg_source"))

        doc = load_document(path, {})

        assert doc.spec.config["password"] == "${PG_PASSWORD}"


class TestLoadDocuments:
    """Tests for load_documents()."""

    def test_single_file_yields_one_document(self, tmp_path):
        """A file path should produce a one-element list."""
        path = write(tmp_path / "pg.yaml", PEER_YAML.format(name="pg_source"))

        docs = load_documents(path, {})

        assert [d.name for d in docs] == ["pg_source"]

    def test_directory_is_loaded_in_path_order(self, tmp_path):
        """Files should be loaded in lexicographic path order, recursively."""
        write(tmp_path / "b.yaml", PEER_YAML.format(name="b"))
        write(tmp_path / "a" / "z.yml", PEER_YAML.format(name="a_z"))
        write(tmp_path / "c.YAML", PEER_YAML.format(name="c"))
        write(tmp_path / "a.yaml", PEER_YAML.format(name="a"))

        docs = load_documents(tmp_path, {})

        assert [d.name for d in docs] == ["a_z", "a", "b", "c"]

    def test_non_yaml_files_are_skipped(self, tmp_path):
        """Only .yaml and .yml files should be loaded."""
        write(tmp_path / "peer.yaml", PEER_YAML.format(name="pg"))
        write(tmp_path / "README.md", "# not a document")
        write(tmp_path / "notes.txt", "kind: Peer")

        docs = load_documents(tmp_path, {})

        assert len(docs) == 1

    def test_empty_directory_yields_nothing(self, tmp_path):
        """A directory without documents should give an empty list."""
        assert load_documents(tmp_path, {}) == []

    def test_bad_file_in_directory_names_that_file(self, tmp_path):
        """The first failing file should abort the load with its path."""
        write(tmp_path / "a.yaml", PEER_YAML.format(name="a"))
        bad = write(tmp_path / "b.yaml", "kind: [oops\n")

        with pytest.raises(ParseError) as exc_info:
            load_documents(tmp_path, {})

        assert exc_info.value.path == bad

    def test_missing_path_raises_file_access_error(self, tmp_path):
        """A path that does not exist should raise FileAccessError."""
        missing = tmp_path / "nope.yaml"
        with pytest.raises(FileAccessError) as exc_info:
            load_documents(missing, {})

        assert exc_info.value.path == missing


class TestBlankKeys:
    """Tests for keys present in YAML but left empty."""

    def test_blank_config_loads_as_empty(self, tmp_path):
        """`config:` with no value should load as an empty mapping."""
        doc = parse_document(
            "kind: Peer\nmetadata:\n  name: pg\nspec:\n  type: postgres\n  config:\n",
            tmp_path / "pg.yaml",
        )

        assert doc.spec.config == {}

    def test_blank_kind_and_metadata_use_defaults(self, tmp_path):
        doc = parse_document("kind:\nmetadata:\nspec:\n", tmp_path / "blank.yaml")

        assert doc.kind == ""
        assert doc.name == ""
        assert doc.spec.tables == []

    def test_blank_config_does_not_abort_directory_load(self, tmp_path):
        """Other documents in the directory should still load."""
        write(tmp_path / "a.yaml", PEER_YAML.format(name="a"))
        write(tmp_path / "b.yaml", "kind: Peer\nmetadata:\n  name: b\nspec:\n  type: postgres\n  config:\n")

        docs = load_documents(tmp_path, {})

        assert [d.name for d in docs] == ["a", "b"]
