"""Utility helpers for the Claude usage monitor."""
