"""Request identity helpers for the HTTP surface."""
