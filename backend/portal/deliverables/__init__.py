"""Deliverable tracking: state machine, progress, workflow service and API."""
