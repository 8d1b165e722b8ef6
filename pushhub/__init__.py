"""Notification dispatch service."""
