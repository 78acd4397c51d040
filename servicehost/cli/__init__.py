"""Command-line handling for servicehost."""
