"""Behavior-driven scenario harness for GStreamer pipelines."""

__version__ = "0.1.0"
