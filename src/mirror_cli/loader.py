"""
Loading of configuration documents from files and directories.

Raw file text goes through ${NAME} environment interpolation before it is
parsed as YAML, so secrets can be kept out of the files:

    password: ${PG_PASSWORD}

Placeholders whose variable is not set are left as literal text.
"""

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from mirror_cli.documents import Document
from mirror_cli.errors import FileAccessError, ParseError

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIXES = (".yaml", ".yml")

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def interpolate(text: str, environ: Mapping[str, str] | None = None) -> str:
    """
    Replace ${NAME} placeholders with environment variable values.

    Args:
        text: Raw document text.
        environ: Variables to use. Defaults to os.environ.

    Returns:
        Text with every resolvable placeholder substituted.
    """
    env = os.environ if environ is None else environ

    def _replace(match: re.Match[str]) -> str:
        value = env.get(match.group(1))
        if value is None:
            logger.debug(f"Leaving unresolved placeholder {match.group(0)}")
            return match.group(0)
        return value

    return _PLACEHOLDER.sub(_replace, text)


def parse_document(text: str, origin: Path) -> Document:
    """
    Parse one document from already-interpolated text.

    Raises:
        ParseError: On YAML syntax errors, an empty file, a non-mapping top
            level, or fields with the wrong structure.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(origin, f"invalid YAML: {e}") from e

    if data is None:
        raise ParseError(origin, "file contains no document")
    if not isinstance(data, dict):
        raise ParseError(origin, f"expected a mapping, got {type(data).__name__}")

    try:
        document = Document.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ParseError(origin, problems) from e

    return document.model_copy(update={"origin": origin})


def load_document(path: Path, environ: Mapping[str, str] | None = None) -> Document:
    """
    Load a single document file.

    Args:
        path: File to read.
        environ: Variables for interpolation. Defaults to os.environ.

    Raises:
        FileAccessError: If the file cannot be read.
        ParseError: If its contents are not a valid document.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileAccessError(path, str(e)) from e

    return parse_document(interpolate(raw, environ), path)


def _is_document_file(path: Path) -> bool:
    return path.is_file() and path.name.lower().endswith(DOCUMENT_SUFFIXES)


def find_document_files(directory: Path) -> list[Path]:
    """Recursively list document files under directory, sorted by path."""
    return sorted(p for p in directory.rglob("*") if _is_document_file(p))


def load_documents(
    path: Path, environ: Mapping[str, str] | None = None
) -> list[Document]:
    """
    Load every document at path.

    A file yields one document. A directory is walked recursively and every
    *.yaml / *.yml file (any case) is loaded in lexicographic path order;
    other files are skipped. The first failing file aborts the load.

    Args:
        path: File or directory.
        environ: Variables for interpolation. Defaults to os.environ.

    Returns:
        Documents in load order. May be empty.

    Raises:
        FileAccessError: If path does not exist or a file cannot be read.
        ParseError: If any file is not a valid document.
    """
    if not path.exists():
        raise FileAccessError(path, "no such file or directory")

    if not path.is_dir():
        return [load_document(path, environ)]

    try:
        files = find_document_files(path)
    except OSError as e:
        raise FileAccessError(path, str(e)) from e
    logger.debug(f"Found {len(files)} document file(s) under {path}")
    return [load_document(f, environ) for f in files]
