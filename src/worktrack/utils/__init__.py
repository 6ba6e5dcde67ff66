"""Utility helpers for worktrack."""
