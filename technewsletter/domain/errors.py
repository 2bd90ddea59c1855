"""Error types shared by the collection, curation and storage layers"""

from pathlib import Path
from typing import Union


class NewsletterError(Exception):
    """Base class for every error raised by the newsletter pipeline."""


class SourceFetchError(NewsletterError):
    """A single feed source could not be fetched or parsed.

    Only the collector ever sees this; it turns it into an empty item list.
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class CurationError(NewsletterError):
    """The model call failed or its response was not a valid digest."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class PersistenceError(NewsletterError):
    """Reading or writing a digest record failed."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")
