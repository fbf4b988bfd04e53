"""CLI layer for lexbill application."""
