"""Telemetry alert engine service."""
