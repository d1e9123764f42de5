"""Greek official gazette (ΦΕΚ) ingestion: registry client, text extraction and provision parsing."""

__version__ = "0.1.0"
