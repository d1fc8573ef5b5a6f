"""Batch drivers for the review dataset.

Public API:
    - records: show catalog and review file I/O
    - cli: ``audit``, ``buzz`` and ``check-shows`` commands (``python -m src``)
"""
