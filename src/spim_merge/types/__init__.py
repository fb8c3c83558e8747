"""Shared dataclasses."""
