"""pamsync command-line interface."""
