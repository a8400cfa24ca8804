"""Command-line tools for the Nexus staging test suite."""
