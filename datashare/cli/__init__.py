"""datashare.cli — typer application for running invocations locally."""

from .main import app, main

__all__ = ["app", "main"]
