# =============================================================================
# docportal/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line entry points for operating the ingestion core outside of
# any web surface:
#
#   1. RUN   -- preflight checks, then ingest every pending PDF under the
#               corpus root using a named profile (fast, ocr, limited,
#               continuous) plus flag overrides.
#   2. STATS -- document/chunk/mention counts and the most-mentioned names.
#   3. SCAN  -- list source folders and PDF counts without ingesting.
#
# Architecture Notes:
#   - argparse, not Click/Typer.
#   - Heavy imports (openai, fitz, pytesseract) are deferred inside the
#     builder so `scan` starts fast.
#   - Providers are built once per process and injected into the
#     coordinator; nothing is held in module globals.
# =============================================================================

"""CLI tools for docportal.

- ``python -m docportal.cli run`` -- ingest the corpus.
- ``python -m docportal.cli stats`` -- show store statistics.
- ``python -m docportal.cli scan`` -- list source folders and PDF counts.
"""
