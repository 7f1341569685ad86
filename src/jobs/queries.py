"""
Loading externally stored SQL text.

Query identifiers are file paths, resolved against an optional base
directory and decoded with the job's configured encoding.
"""

import logging
from pathlib import Path

from .errors import QueryLoadError

logger = logging.getLogger(__name__)


class FileQueryLoader:
    """
    Reads query files for a job.

    Usage:
        load_query_text = FileQueryLoader("sql/", encoding="cp932")
        sql = load_query_text("customers_select.sql")
    """

    def __init__(self, base_dir: str | Path | None = None, encoding: str = "utf-8"):
        self.base_dir = Path(base_dir) if base_dir else None
        self.encoding = encoding

    def resolve(self, identifier: str) -> Path:
        path = Path(identifier)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def __call__(self, identifier: str) -> str:
        """
        Return the text stored under ``identifier``.

        Raises:
            QueryLoadError: If the file is missing, unreadable, cannot be
                decoded or is empty
        """
        if not identifier:
            raise QueryLoadError(str(identifier), "no query file configured")

        path = self.resolve(identifier)
        try:
            text = path.read_bytes().decode(self.encoding)
        except (OSError, UnicodeDecodeError, LookupError) as e:
            raise QueryLoadError(str(path), f"{type(e).__name__}: {e}") from e

        if not text.strip():
            raise QueryLoadError(str(path), "file is empty")

        logger.debug(f"Loaded query {path} ({len(text)} chars)")
        return text
