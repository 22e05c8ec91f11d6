"""Normalization helpers for catalog codes and dimension strings."""
