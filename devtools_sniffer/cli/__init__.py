"""Command-line interface for devtools-sniffer."""
