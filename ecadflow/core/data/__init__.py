"""Data access: ingestion sources and output storage."""
