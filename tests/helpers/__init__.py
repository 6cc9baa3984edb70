"""Shared helpers for Backstroke tests."""
