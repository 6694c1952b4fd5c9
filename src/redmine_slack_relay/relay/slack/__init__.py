"""Slack webhook client, payload models and markup helpers."""
