"""Chain clients."""
