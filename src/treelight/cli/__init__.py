"""Command line interface for treelight."""
