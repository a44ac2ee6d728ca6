"""Plain-function entry points consumed by host test runners."""
