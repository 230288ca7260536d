"""Shared helpers for models and services."""
