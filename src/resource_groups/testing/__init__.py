"""Test support utilities for the resource_groups package.

This sub-package exports helpers that are useful across test trees: a
disposable PostgreSQL controller, typed table-count queries, and the
legacy-schema fixture loader.  None of them depend on pytest, so they can be
imported from any test context.
"""

from __future__ import annotations
