"""Core batch conversion components."""
