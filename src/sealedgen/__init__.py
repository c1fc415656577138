"""sealedgen package root."""

from sealedgen.exceptions import NeverRaise, NeverThrown
from sealedgen.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
