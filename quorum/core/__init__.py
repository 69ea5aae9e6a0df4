"""Meeting-record synchronization and revision engine."""
