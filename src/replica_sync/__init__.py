"""Poll-based replication of a relational ``persons`` table into MongoDB."""

__version__ = "0.3.0"
