"""Org resolution, provisioning and workspace routing."""
