"""Enrichment run wiring: YAML run configuration, stage ordering and output checksums."""
