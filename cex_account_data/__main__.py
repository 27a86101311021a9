"""Allow running with ``python -m cex_account_data``."""

from .main import main

main()
