"""peeklint — replace is_empty() guards plus [0] indexing with if-let .first()."""

__version__ = "0.3.0"
