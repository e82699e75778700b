"""
Restyle: safe, resumable bulk replacement of shared styles and variable bindings.

A library for rewriting a shared attribute resource across thousands of
referencing document nodes, with a checkpoint taken before the first mutation.
"""

__version__ = "0.1.0"
