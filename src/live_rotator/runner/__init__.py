"""Command-line runner and run report."""
