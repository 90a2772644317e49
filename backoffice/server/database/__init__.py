"""PostgreSQL access for the back-office resources."""
