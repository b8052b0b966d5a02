"""Exception hierarchy for glyph-search.

GlyphSearchError  — base for everything raised by this package
ModelUnavailable  — embedding provider could not load or embed
DataUnavailable   — corpus artifact could not be fetched or decoded
CorruptData       — artifact violates a structural invariant
InvalidInput      — degenerate input to the offline build
"""

from __future__ import annotations


class GlyphSearchError(Exception):
    """Base class for glyph-search errors."""


class ModelUnavailable(GlyphSearchError):
    """The embedding provider failed to initialise or to produce an embedding."""


class DataUnavailable(GlyphSearchError):
    """The corpus artifact could not be fetched or decoded."""


class CorruptData(DataUnavailable):
    """The corpus artifact is structurally invalid (length mismatch, truncation)."""


class InvalidInput(GlyphSearchError, ValueError):
    """Build input is degenerate (empty corpus, all-zero embeddings, ragged rows)."""
