"""Allow running as ``python -m battstatus``."""

from battstatus.main import main

main()
