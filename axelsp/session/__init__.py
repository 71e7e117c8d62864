"""Session supervision and notification routing for the axels server."""
