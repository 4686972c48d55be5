"""UPD Excel -> ON_NSCHFDOPPR XML converter."""

__version__ = "1.0.0"
