"""Notification log for committed marketplace operations."""
