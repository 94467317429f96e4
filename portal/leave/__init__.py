"""Leave module — business days, selection, balance, visibility, request store."""
