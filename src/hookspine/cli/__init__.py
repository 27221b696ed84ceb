"""hookspine command line (typer)."""
