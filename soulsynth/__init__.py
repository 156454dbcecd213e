"""
soulsynth - Incremental synthesis of memory text into a tiered soul document

Memory files are distilled into signals (by an external extraction
collaborator), signals fold into principles, and principles with enough
evidence are promoted to axioms. Every axiom keeps a provenance chain back
to the file and line it came from, and every write of the output document
is preceded by a restorable backup.

Subpackages:
    - synthesis: matcher, principle store, compressor, provenance
    - ops: run state, backups, persistence, version control
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
