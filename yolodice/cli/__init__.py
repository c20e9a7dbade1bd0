"""Command-line interface for yolodice."""
