# =============================================================================
# src/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# Operator tooling for the lesson catalog.  Everything lives in one
# argparse program (catalog.py) with a subcommand per task, runnable as
# `python -m src.cli <subcommand>`.
#
# Architecture Notes:
#   - argparse, not Click/Typer, to keep dependencies minimal.
#   - The engine is built inside each subcommand through src.main, so
#     `--help` stays fast and never touches the database.
# =============================================================================

"""CLI tools for the lesson catalog.

- ``python -m src.cli init-db`` — create the SQLite schema
- ``python -m src.cli import-lessons`` — upsert lessons from a JSON file
- ``python -m src.cli search`` — run a catalog search
- ``python -m src.cli find-duplicates`` — list duplicate pairs or groups
- ``python -m src.cli resolve`` — resolve one duplicate group
- ``python -m src.cli backfill-embeddings`` / ``regenerate-hashes`` —
  fingerprint maintenance
"""
