"""FairSplit: group expense splitting with balances and settlement plans."""

__version__ = "0.1.0"
