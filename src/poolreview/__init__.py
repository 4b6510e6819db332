"""poolreview - change-impact review for component library pools."""

__version__ = "0.1.0"
