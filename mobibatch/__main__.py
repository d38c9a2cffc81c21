"""Allow ``python -m mobibatch``."""

from mobibatch.cli.main import app

app()
