"""Rule-based client reports."""
