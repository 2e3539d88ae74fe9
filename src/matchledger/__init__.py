"""Match records and the prize money / debt settlement ledger for a two-team league."""

__version__ = "0.1.0"
