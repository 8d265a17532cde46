"""certsmith command-line interface."""
