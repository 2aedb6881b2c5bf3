"""Agency portal backend."""
