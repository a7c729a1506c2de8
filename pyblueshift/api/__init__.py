"""Low-level BluOS protocol helpers: constants, transport and field extraction."""
