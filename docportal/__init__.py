"""docportal -- ingestion core for a PDF document research portal."""

__version__ = "0.1.0"
