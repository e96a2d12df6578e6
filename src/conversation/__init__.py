"""Per-call conversation state: transcript store, turn state machine and gateway contracts."""
