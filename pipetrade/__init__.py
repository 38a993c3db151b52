"""PipeTrade ERP backend."""
