"""Command-line interface for mobibatch."""
