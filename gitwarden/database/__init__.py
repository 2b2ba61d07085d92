"""Repository catalog storage."""
