"""Snippets - integration example catalog.

This package provides tools for:
- Loading the example corpus into an immutable, content-addressed store
- Detecting which integrations a project depends on
- Selecting and ordering the matching examples
- Bundling them under an entry/size budget for an assistant or scaffolder

Usage:
    python -m scripts.snippets status                 # Corpus summary
    python -m scripts.snippets detect                 # Integrations in ./package.json
    python -m scripts.snippets bundle --max-entries 5 # Bundle for ./package.json
"""

__version__ = "1.0.0"
