"""Services that operate on a loaded vault."""
