"""Typer command line for the progress tracker."""
