from . import program
from .keys import load_keypair, parse_keypair

__all__ = ["program", "load_keypair", "parse_keypair"]
