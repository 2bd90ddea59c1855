"""Digest storage: one JSON record per UTC calendar date"""

import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from ..config_loader import data_dir
from ..domain.errors import PersistenceError
from ..domain.models import Digest, DigestRecord, RawArticle

RECORD_SUFFIX = ".json"

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def date_key(when: Optional[Union[datetime, str]] = None) -> str:
    """
    Normalize a date to its record key (YYYY-MM-DD).

    Datetimes are converted to UTC first; naive ones are taken as UTC.
    Strings must already be valid keys.

    Raises:
        ValueError: for a malformed key string
    """
    if when is None:
        when = datetime.now(timezone.utc)
    if isinstance(when, datetime):
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc)
        return when.strftime("%Y-%m-%d")

    key = str(when).strip()
    if not _DATE_KEY.match(key):
        raise ValueError(f"Invalid date key {when!r}, expected YYYY-MM-DD")
    datetime.strptime(key, "%Y-%m-%d")
    return key


def _default_directory() -> Path:
    return data_dir() / "newsletters"


class DigestStore:
    """
    Key-value store of DigestRecords on disk, keyed by date.

    Saving a date that already exists replaces its record. There is no
    locking between writers; concurrent saves of one date are last-write-wins.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else _default_directory()

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{key}{RECORD_SUFFIX}"

    def save(
        self,
        digest: Digest,
        raw_articles: Sequence[RawArticle],
        date: Optional[Union[datetime, str]] = None,
        generated_at: Optional[datetime] = None,
    ) -> Path:
        """
        Persist a digest with the raw articles that produced it.

        Args:
            digest: curated digest
            raw_articles: the collected articles sent to curation
            date: record date, defaults to now (UTC)
            generated_at: generation timestamp, defaults to now (UTC)

        Returns:
            Path of the written record

        Raises:
            PersistenceError: when the record cannot be written
        """
        key = date_key(date)
        record = DigestRecord.build(digest, list(raw_articles), key, generated_at)
        path = self._path_for(key)
        logger.info(f"[store] Saving newsletter {key}...")

        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=f".{key}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(record.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"[store] Failed to save newsletter {key}: {e}")
            raise PersistenceError(path, str(e)) from e
        finally:
            # Still set only when the replace did not happen
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        size_kb = path.stat().st_size / 1024
        logger.info(f"[store] Newsletter saved: {path.name} ({size_kb:.2f} KB)")
        return path

    def list_dates(self) -> List[str]:
        """Date keys of all stored records, most recent first."""
        if not self.directory.exists():
            return []
        keys = [
            path.stem
            for path in self.directory.glob(f"*{RECORD_SUFFIX}")
            if _DATE_KEY.match(path.stem)
        ]
        return sorted(keys, reverse=True)

    def load(self, date: Union[datetime, str]) -> Optional[DigestRecord]:
        """
        Load the record for `date`.

        Returns:
            The record, or None when no record exists for that date

        Raises:
            ValueError: for a malformed date key
            PersistenceError: when the record exists but cannot be read
        """
        key = date_key(date)
        path = self._path_for(key)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"[store] Failed to read newsletter {key}: {e}")
            raise PersistenceError(path, str(e)) from e

        try:
            return DigestRecord.from_dict(data)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.error(f"[store] Corrupt newsletter record {key}: {e}")
            raise PersistenceError(path, f"corrupt record: {e}") from e

    def latest(self) -> Optional[DigestRecord]:
        dates = self.list_dates()
        if not dates:
            return None
        return self.load(dates[0])
