"""Utility helpers for sheet2tree."""
