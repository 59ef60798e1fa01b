"""Pydantic domain models for tubesum."""
