"""Allow ``python -m wlpop <tool>``."""

from .command import main

main()
