"""Entry point for ``python -m qz_installer``."""

from qz_installer.cli import app

app(prog_name="qz-installer")
