"""Command line client for HoloDash."""
