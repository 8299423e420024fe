"""Pure domain core: no I/O, no ORM, no store access."""
