"""Test doubles for the pipeline backend."""
