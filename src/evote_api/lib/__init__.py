"""Pure decision libraries with no database access."""
