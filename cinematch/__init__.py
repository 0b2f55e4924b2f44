"""CineMatch backend application."""
