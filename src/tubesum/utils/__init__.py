"""Utility helpers shared across tubesum modules."""
