"""remembrall: a tiny command-line jotter for things you need to remember."""

__version__ = "v0.1.0"
