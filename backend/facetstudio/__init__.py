"""Facet Studio: category taxonomy and facet recommendation backend."""

__version__ = "1.0.0"
