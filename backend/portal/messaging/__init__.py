"""Org-wide agency/client messaging."""
