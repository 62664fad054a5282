"""module-pack: ship a subset of a project's feature modules as a runnable archive."""

__version__ = "0.1.0"
