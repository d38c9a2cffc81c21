"""Utility helpers for mobibatch."""
