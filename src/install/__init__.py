"""Private dependency library management."""
