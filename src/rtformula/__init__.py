"""rtformula -- runtime-defined numeric formulas over named variables."""

__version__ = "0.3.0"
