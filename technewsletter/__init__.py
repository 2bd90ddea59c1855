"""Tech newsletter: RSS collection, model curation and a small digest API."""

__version__ = "1.0.0"
