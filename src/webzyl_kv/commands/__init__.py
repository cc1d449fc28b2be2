"""Subcommand implementations; each module exposes configure_*_parser and run_*_command."""
