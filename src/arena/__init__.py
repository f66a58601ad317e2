"""CTF arena backend: matches, teams, applications and adjudication."""
