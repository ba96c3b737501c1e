"""Allow running the CLI as ``python -m cmdprobe.cli``."""

from cmdprobe.cli.main import main

if __name__ == "__main__":
    main()
