"""Command line interface for moneyquest."""
