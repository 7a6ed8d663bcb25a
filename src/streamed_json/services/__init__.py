"""Domain services: document encoding, streaming, persistence and metrics."""
