"""Command line interface for platearrange."""
