"""Command-line interface for dmxlink."""
