"""Authentication and workspace authorization."""
