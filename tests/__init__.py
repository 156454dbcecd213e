"""soulsynth Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - synthesis/: matcher, principle store, compressor, provenance, notation
  - ops/: run state, backups, persistence
- integration/: End-to-end synthesis runs over a temporary workspace

Running tests:
    # All tests
    pytest

    # Specific area
    pytest tests/unit/synthesis/

    # Only the workspace flows
    pytest -m integration
"""
