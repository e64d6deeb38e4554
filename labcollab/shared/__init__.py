"""Shared utilities for the collaboration core."""
