"""MeuPaoZin bakery order backend."""

__version__ = "2.0.0"
