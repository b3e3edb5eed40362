"""Command-line interface of the DM database Prometheus exporter."""
