"""Data models for dgarden."""
