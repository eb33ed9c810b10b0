"""Allow `python -m booking_pulse`."""

from .cli import main

main()
