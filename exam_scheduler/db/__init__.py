"""Database engine, sessions and schema initialization."""
