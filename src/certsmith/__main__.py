"""Allow ``python -m certsmith``."""

from certsmith.cli.main import main

main()
