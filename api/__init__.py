"""HTTP surface for TaskVerse."""
