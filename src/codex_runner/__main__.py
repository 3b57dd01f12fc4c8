"""Allow running as: python -m codex_runner"""

from codex_runner.server import main

main()
