"""Address derivation, instruction building, assembly and simulation."""
