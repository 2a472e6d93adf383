"""Low-level helpers: binary reading and the CP-1252 codec."""
