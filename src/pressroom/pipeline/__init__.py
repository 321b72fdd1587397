"""Pipeline state machine and periodic workers."""
