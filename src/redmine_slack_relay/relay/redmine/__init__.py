"""Redmine REST API client and issue models."""
