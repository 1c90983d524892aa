"""Runnable scenarios for the engine."""
