"""Polling monitor that reports file and directory changes below an entry path."""
